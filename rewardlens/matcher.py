# rewardlens/matcher.py
"""
RewardLens — Merchant matcher (code → chain → keywords → alias boost)

Purpose
-------
Produce a richly annotated match in the brand-aware `RewardCategory` space.
Signals are applied by authority, highest first; a later, weaker step never
lowers the confidence set by an earlier one.

1) Category code      : table lookup, confidence 0.95, ``code_based=True``;
                        hotel/airline sub-brands are resolved from the code.
2) Chain from name    : hotel program / airline detection; upgrades the
                        category only while it is still generic or not
                        code-based; confidence ≥ 0.9.
3) Keyword fallback   : rule-based classifier mapped into the reward space,
                        only when neither a code nor a chain decided.
4) Alias boost        : +0.1 for a well-known business, +0.05 when an alias
                        was resolved; capped at 1.0.

Every contributing step appends a note; the notes explain the decision.

Public API
----------
- MerchantMatcher.match(name, category_code=None) -> MerchantMatchResult
- MerchantMatcher.best_category_for(name, category_code=None) -> RewardCategory
- MerchantMatcher.matches_category(name, target, category_code=None) -> CategoryMatch
- MerchantMatcher.match_many(items) -> list[MerchantMatchResult]
- MerchantMatcher.similarity_to(name, target) -> float
- MerchantMatcher.find_best_match(target, candidates, threshold=0.6) -> BestMatch
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from .brands import HOTEL, detect_chain
from .classifier import SOURCE_DEFAULT, RuleBasedClassifier, clamp01
from .codes import GENERIC_AIRLINE, GENERIC_HOTEL, CategoryCodeMap, CodeLike, parse_code
from .preproc import canonicalize, is_known_business, normalize_name
from .similarity import BestMatch, find_best_match, similarity
from .taxonomy import (
    AIRLINE_FAMILY,
    HOTEL_FAMILY,
    TRAVEL_FAMILY,
    RewardCategory,
    taxonomy_to_category,
)

CODE_CONFIDENCE = 0.95
CHAIN_CONFIDENCE = 0.9
BRAND_CONFIDENCE = 0.9
KEYWORD_CONFIDENCE = 0.7
KNOWN_BUSINESS_BOOST = 0.1
ALIAS_BOOST = 0.05
FAMILY_WIDENING = 0.9


@dataclass
class MerchantMatchResult:
    """Annotated match; ``notes`` lists the contributing signals in order."""

    original_name: str
    normalized_name: str
    canonical_name: str
    taxonomy: RewardCategory = RewardCategory.EVERYTHING_ELSE
    confidence: float = 0.0
    hotel_brand: Optional[str] = None
    airline_brand: Optional[str] = None
    code_based: bool = False
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "original_name": self.original_name,
            "normalized_name": self.normalized_name,
            "canonical_name": self.canonical_name,
            "taxonomy": self.taxonomy.value,
            "confidence": round(self.confidence, 4),
            "hotel_brand": self.hotel_brand,
            "airline_brand": self.airline_brand,
            "code_based": self.code_based,
            "notes": list(self.notes),
        }


class CategoryMatch(NamedTuple):
    matches: bool
    confidence: float


MatchItem = Union[str, Tuple[str, Optional[CodeLike]]]


class MerchantMatcher:
    """
    Orchestrates code map, chain detection and the rule-based classifier.

    Stateless between calls; safe to share across threads.
    """

    def __init__(
        self,
        classifier: Optional[RuleBasedClassifier] = None,
        codes: Optional[CategoryCodeMap] = None,
        code_confidence: float = CODE_CONFIDENCE,
    ):
        self.classifier = classifier or RuleBasedClassifier()
        self.codes = codes or self.classifier.codes
        self.code_confidence = float(code_confidence)

    # ------------------------------------------------------------------ steps

    def _apply_code(self, result: MerchantMatchResult, code: int) -> None:
        category = self.codes.lookup(code)
        if category is None:
            return
        result.taxonomy = category
        result.confidence = self.code_confidence
        result.code_based = True
        result.notes.append(f"MCC {code} mapped to {category.value}")

        if category == RewardCategory.HOTELS:
            brand = self.codes.hotel_brand_for_code(code)
            if brand != GENERIC_HOTEL:
                result.hotel_brand = brand
                program = self.codes.hotel_program_category(brand)
                if program is not None:
                    result.taxonomy = program
                result.notes.append(f"Hotel brand {brand} resolved from MCC {code}")
        elif category == RewardCategory.FLIGHTS:
            brand = self.codes.airline_brand_for_code(code)
            if brand != GENERIC_AIRLINE:
                result.airline_brand = brand
                airline = self.codes.airline_category(brand)
                if airline is not None:
                    result.taxonomy = airline
                result.notes.append(f"Airline {brand} resolved from MCC {code}")

    def _apply_chain(self, result: MerchantMatchResult) -> bool:
        hit = detect_chain(result.original_name)
        if hit.kind is None:
            return False

        if hit.kind == HOTEL:
            if result.hotel_brand is None:
                result.hotel_brand = hit.brand
            kept = result.hotel_brand != hit.brand
            family = RewardCategory.HOTELS
            specific = self.codes.hotel_program_category(hit.brand)
            label = "Hotel brand"
        else:
            if result.airline_brand is None:
                result.airline_brand = hit.brand
            kept = result.airline_brand != hit.brand
            family = RewardCategory.FLIGHTS
            specific = self.codes.airline_category(hit.brand)
            label = "Airline"

        # a code-derived category only gives way within the chain's own family
        upgradable = (not result.code_based) or result.taxonomy == family
        if upgradable and specific is not None:
            result.taxonomy = specific
        elif not upgradable:
            kept = True
        result.confidence = max(result.confidence, CHAIN_CONFIDENCE)
        note = f"{label} {hit.brand} detected from name"
        if kept:
            note += " (code brand kept)"
        result.notes.append(note)
        return True

    def _apply_keywords(self, result: MerchantMatchResult) -> None:
        clf = self.classifier.classify(result.original_name)
        brand = self.classifier.brands.get(clf.brand_id) if clf.brand_id else None
        if brand is not None:
            category = self.codes.lookup(brand.category_code) or taxonomy_to_category(brand.taxonomy)
            result.taxonomy = category
            result.confidence = max(result.confidence, BRAND_CONFIDENCE)
            result.notes.append(f"Brand {brand.id} mapped to {category.value}")
            return

        category = taxonomy_to_category(clf.taxonomy)
        if clf.source == SOURCE_DEFAULT or category == RewardCategory.EVERYTHING_ELSE:
            return
        result.taxonomy = category
        result.confidence = max(result.confidence, KEYWORD_CONFIDENCE)
        result.notes.append(f"Keyword match: {clf.taxonomy.value} -> {category.value}")

    def _apply_alias_boost(self, result: MerchantMatchResult) -> None:
        if is_known_business(result.canonical_name):
            result.confidence = clamp01(result.confidence + KNOWN_BUSINESS_BOOST)
            result.notes.append(f"Known business: {result.canonical_name}")
        if result.canonical_name != result.normalized_name:
            result.confidence = clamp01(result.confidence + ALIAS_BOOST)
            result.notes.append(f"Alias resolved: {result.normalized_name} -> {result.canonical_name}")

    # ------------------------------------------------------------------ API

    def match(self, name: str, category_code: Optional[CodeLike] = None) -> MerchantMatchResult:
        """
        Match one merchant name, optionally with its category code.

        Examples
        --------
        >>> r = MerchantMatcher().match("Unbranded Diner", 5812)
        >>> r.taxonomy.value, r.confidence, r.code_based
        ('dining', 0.95, True)
        """
        if not isinstance(name, str):
            raise TypeError(f"name must be a str, got {type(name).__name__}")
        code = parse_code(category_code)

        result = MerchantMatchResult(
            original_name=name,
            normalized_name=normalize_name(name),
            canonical_name=canonicalize(name),
        )
        if code is not None:
            self._apply_code(result, code)
        chain_found = self._apply_chain(result)
        if not result.code_based and not chain_found and result.taxonomy == RewardCategory.EVERYTHING_ELSE:
            self._apply_keywords(result)
        self._apply_alias_boost(result)
        return result

    def best_category_for(self, name: str, category_code: Optional[CodeLike] = None) -> RewardCategory:
        return self.match(name, category_code).taxonomy

    def matches_category(
        self,
        name: str,
        target: Union[RewardCategory, str],
        category_code: Optional[CodeLike] = None,
    ) -> CategoryMatch:
        """
        Whether the merchant belongs to ``target``, with family widening.

        - exact category: the match confidence.
        - ``hotels`` target: any hotel program category matches.
        - ``flights`` target: any airline category matches.
        - ``travel`` target: any travel-family category matches at 0.9× confidence.
        """
        target = RewardCategory(target)
        result = self.match(name, category_code)
        actual = result.taxonomy

        if actual == target:
            return CategoryMatch(True, result.confidence)
        if target == RewardCategory.HOTELS and actual in HOTEL_FAMILY:
            return CategoryMatch(True, result.confidence)
        if target == RewardCategory.FLIGHTS and actual in AIRLINE_FAMILY:
            return CategoryMatch(True, result.confidence)
        if target == RewardCategory.TRAVEL and actual in TRAVEL_FAMILY:
            return CategoryMatch(True, clamp01(result.confidence * FAMILY_WIDENING))
        return CategoryMatch(False, 0.0)

    def match_many(self, items: Iterable[MatchItem]) -> List[MerchantMatchResult]:
        """Match ``name`` or ``(name, code)`` items independently, in order."""
        out: List[MerchantMatchResult] = []
        for item in items:
            if isinstance(item, str):
                out.append(self.match(item))
            else:
                name, code = item
                out.append(self.match(name, code))
        return out

    @staticmethod
    def similarity_to(name: str, target: str) -> float:
        """1.0 for equal canonical names, else the edit similarity of canonical names."""
        a, b = canonicalize(name), canonicalize(target)
        if a == b:
            return 1.0
        return similarity(a, b)

    @staticmethod
    def find_best_match(target: str, candidates: Sequence[str], threshold: float = 0.6) -> BestMatch:
        return find_best_match(target, candidates, threshold)
