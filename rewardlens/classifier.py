# rewardlens/classifier.py
"""
RewardLens — Rule-based classifier (brand → tags + keywords → default)

What this module provides
-------------------------
- Classification: immutable taxonomy decision (confidence clamped to [0, 1]).
- RuleBasedClassifier.classify(name, provider_tags, place_text) -> Classification

Algorithm
---------
1) Brand registry lookup: a hit fixes the taxonomy with confidence 1.0.
2) Votes from provider tags and from keywords on place text and name.
3) Without a brand, the highest vote wins (ties: first taxonomy to receive a
   vote). No brand and no votes → generic default at a low fixed confidence.
4) Food-cue nudge: a generic result for a name/place text with clear coffee
   or dining cues is overridden with a confidence floor.
5) Category code candidates come from the code map's reverse mapping.

The classifier never raises for data-quality reasons; absence of signal is the
default taxonomy. Only a non-string name is a programmer error (TypeError).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from .brands import BrandRegistry
from .codes import CategoryCodeMap
from .rules import KeywordRuleSet, ProviderTagMapper, food_cue, merge_votes
from .taxonomy import DEFAULT_TAXONOMY, Taxonomy

# Provenance tags carried by Classification.source
SOURCE_BRAND = "brand"
SOURCE_RULES = "rules"
SOURCE_DEFAULT = "default"
SOURCE_CODE = "code"
SOURCE_AI = "ai"


def clamp01(x: float) -> float:
    return float(max(0.0, min(1.0, x)))


@dataclass(frozen=True)
class Classification:
    """
    Outcome of one classification.

    Attributes
    ----------
    taxonomy : Taxonomy
    category_code_candidates : tuple[int, ...]
        Candidate merchant category codes for the taxonomy (never empty when
        produced by the engine).
    confidence : float
        Trust signal in [0, 1]; clamped at construction.
    brand_id : str | None
        Registry brand that produced or accompanies the decision.
    source : str
        Which signal decided: ``brand``, ``rules``, ``default``, ``code`` or ``ai``.
    """

    taxonomy: Taxonomy
    category_code_candidates: Tuple[int, ...] = field(default_factory=tuple)
    confidence: float = 0.0
    brand_id: Optional[str] = None
    source: str = SOURCE_RULES

    def __post_init__(self):
        object.__setattr__(self, "taxonomy", Taxonomy(self.taxonomy))
        object.__setattr__(self, "confidence", clamp01(self.confidence))
        object.__setattr__(
            self, "category_code_candidates", tuple(int(c) for c in self.category_code_candidates)
        )

    def to_dict(self) -> Dict:
        return {
            "taxonomy": self.taxonomy.value,
            "category_code_candidates": list(self.category_code_candidates),
            "confidence": round(self.confidence, 4),
            "brand_id": self.brand_id,
            "source": self.source,
        }


def _first_max(votes: Dict[Taxonomy, float]) -> Tuple[Optional[Taxonomy], float]:
    best: Optional[Taxonomy] = None
    best_score = 0.0
    for taxonomy, score in votes.items():
        if best is None or score > best_score:
            best, best_score = taxonomy, score
    return best, best_score


class RuleBasedClassifier:
    """
    Fuse brand registry, provider tags and keyword votes into one decision.

    All collaborators are read-only and may be shared between classifiers and
    threads.

    Parameters
    ----------
    brands, keywords, tags, codes :
        Registries (defaults: the built-in tables).
    default_confidence : float
        Confidence of the generic default result.
    food_cue_floor : float
        Minimum confidence of a food-cue override.
    """

    def __init__(
        self,
        brands: Optional[BrandRegistry] = None,
        keywords: Optional[KeywordRuleSet] = None,
        tags: Optional[ProviderTagMapper] = None,
        codes: Optional[CategoryCodeMap] = None,
        default_confidence: float = 0.3,
        food_cue_floor: float = 0.6,
    ):
        self.brands = brands or BrandRegistry()
        self.keywords = keywords or KeywordRuleSet()
        self.tags = tags or ProviderTagMapper()
        self.codes = codes or CategoryCodeMap()
        self.default_confidence = float(default_confidence)
        self.food_cue_floor = float(food_cue_floor)

    def votes(
        self,
        name: str,
        provider_tags: Optional[Iterable[str]] = None,
        place_text: Optional[str] = None,
    ) -> Dict[Taxonomy, float]:
        """Merged tag and keyword votes (tags first, then place text, then name)."""
        return merge_votes(
            self.tags.vote(provider_tags),
            self.keywords.vote(place_text),
            self.keywords.vote(name),
        )

    def classify(
        self,
        name: str,
        provider_tags: Optional[Iterable[str]] = None,
        place_text: Optional[str] = None,
    ) -> Classification:
        """
        Classify one merchant.

        Examples
        --------
        >>> c = RuleBasedClassifier().classify("Starbucks Reserve Roastery")
        >>> c.taxonomy.value, c.confidence, c.brand_id
        ('coffee', 1.0, 'starbucks')
        """
        if not isinstance(name, str):
            raise TypeError(f"name must be a str, got {type(name).__name__}")

        brand = self.brands.find_brand(name)
        best, best_score = _first_max(self.votes(name, provider_tags, place_text))

        if brand is not None:
            taxonomy, confidence, source = brand.taxonomy, 1.0, SOURCE_BRAND
        elif best is not None:
            taxonomy, confidence, source = best, clamp01(best_score), SOURCE_RULES
        else:
            taxonomy, confidence, source = DEFAULT_TAXONOMY, self.default_confidence, SOURCE_DEFAULT

        if brand is None and taxonomy == DEFAULT_TAXONOMY:
            cue = food_cue(f"{name} {place_text or ''}")
            if cue is not None:
                taxonomy = cue
                confidence = max(confidence, self.food_cue_floor)
                source = SOURCE_RULES

        return Classification(
            taxonomy=taxonomy,
            category_code_candidates=self.codes.codes_for(taxonomy),
            confidence=confidence,
            brand_id=brand.id if brand is not None else None,
            source=source,
        )
