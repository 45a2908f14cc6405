# rewardlens/rules.py
"""
RewardLens — Keyword and Provider-Tag Voting
============================================

Purpose
-------
Provide fast, deterministic taxonomy votes from two weak signals:
1) **Keyword patterns** found in free text (business name, provider place name).
2) **Provider type tags** attached by the place provider (``restaurant``,
   ``gas_station``, ``department_store``...).

Rules are data: an ordered list of ``(pattern, taxonomy, weight)`` records.
Voting is a pure fold over that list; every rule that matches adds its weight
to its taxonomy, so several rules may reinforce the same taxonomy. New rules are
added as new records, never as new code paths.

Weights
-------
Structured provider tags are the more reliable signal, so their weights are
higher (0.55–0.9) than free-text keyword weights (0.3–0.6).

Public API
----------
- `KeywordRule`
- `KeywordRuleSet.vote(text) -> dict[Taxonomy, float]`
- `ProviderTagMapper.vote(tags) -> dict[Taxonomy, float]`
- `food_cue(text) -> Taxonomy | None`
- `DEFAULT_KEYWORD_RULES`, `DEFAULT_TAG_RULES`
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

import regex as re

from .preproc import fold_text
from .taxonomy import Taxonomy


@dataclass(frozen=True)
class KeywordRule:
    """
    One weighted pattern rule.

    Attributes
    ----------
    pattern : regex.Pattern
        Compiled, case-insensitive pattern searched anywhere in the text.
    taxonomy : Taxonomy
        Taxonomy receiving the vote.
    weight : float
        Vote weight added when the pattern matches.
    """

    pattern: "re.Pattern"
    taxonomy: Taxonomy
    weight: float

    @classmethod
    def of(cls, pattern: str, taxonomy: Taxonomy, weight: float) -> "KeywordRule":
        return cls(re.compile(pattern, re.IGNORECASE), Taxonomy(taxonomy), float(weight))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _fold_votes(rules: Sequence[KeywordRule], texts: Iterable[str]) -> Dict[Taxonomy, float]:
    votes: Dict[Taxonomy, float] = {}
    for text in texts:
        if not text:
            continue
        for rule in rules:
            if rule.matches(text):
                votes[rule.taxonomy] = votes.get(rule.taxonomy, 0.0) + rule.weight
    return votes


def merge_votes(*vote_maps: Dict[Taxonomy, float]) -> Dict[Taxonomy, float]:
    """Sum several vote maps, keeping first-seen taxonomy order."""
    merged: Dict[Taxonomy, float] = {}
    for votes in vote_maps:
        for taxonomy, weight in votes.items():
            merged[taxonomy] = merged.get(taxonomy, 0.0) + weight
    return merged


# ---------------------------------------------------------------------------
# Free-text keywords
# ---------------------------------------------------------------------------

K = KeywordRule.of
T = Taxonomy

DEFAULT_KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    K(r"\b(?:coffee|cafe|espresso|latte)", T.COFFEE, 0.6),
    K(r"\b(?:restaurant|diner|grill|taqueria|pizz|sushi|noodle|bbq)", T.DINING, 0.5),
    K(r"\b(?:grocery|groceries|supermarket|market|bodega)", T.GROCERIES, 0.5),
    K(r"\b(?:gas|fuel|petrol)|\bstation\b", T.GAS, 0.6),
    K(r"\b(?:pharmacy|drugstore|drug store|rx)\b", T.PHARMACY, 0.6),
    K(r"\b(?:hotel|inn|lodging|motel|resort|suites)\b", T.HOTELS, 0.6),
    K(r"\b(?:electronics|gadgets)\b", T.ELECTRONICS, 0.4),
    K(r"\b(?:hardware|lumber|home ?goods|home ?improvement)\b", T.HOME_IMPROVEMENT, 0.5),
    K(r"\b(?:movie|cinema|theat(?:er|re)|bowling|attraction|streaming)", T.ENTERTAINMENT, 0.4),
    K(r"\b(?:travel|tours|agency|airlines?|airways)\b", T.TRAVEL, 0.3),
)


class KeywordRuleSet:
    """
    Ordered keyword rules voting on free text.

    Examples
    --------
    >>> KeywordRuleSet().vote("Joe's Hardware Home Improvement")
    {<Taxonomy.HOME_IMPROVEMENT: 'home_improvement'>: 0.5}
    """

    def __init__(self, rules: Optional[Iterable[KeywordRule]] = None):
        self.rules: Tuple[KeywordRule, ...] = tuple(DEFAULT_KEYWORD_RULES if rules is None else rules)

    def __len__(self) -> int:
        return len(self.rules)

    def vote(self, text: Optional[str]) -> Dict[Taxonomy, float]:
        """Accumulate the weight of every rule matching ``text`` (folded to ASCII)."""
        return _fold_votes(self.rules, [fold_text(text)])


# ---------------------------------------------------------------------------
# Provider type tags
# ---------------------------------------------------------------------------

def _tag(*words: str) -> str:
    # Tags are snake_case: "_" separates words, so \b cannot be used.
    return r"(?<![a-z])(?:" + "|".join(words) + r")(?![a-z])"


DEFAULT_TAG_RULES: Tuple[KeywordRule, ...] = (
    K(_tag("restaurant", "meal_takeaway", "meal_delivery", "food", "bakery", "bar",
           "bistro", "brunch", "cafeteria"), T.DINING, 0.85),
    K(_tag("cafe", "coffee", "coffee_shop"), T.COFFEE, 0.9),
    K(_tag("grocery", "grocery_or_supermarket", "supermarket", "convenience", "market"),
      T.GROCERIES, 0.8),
    K(_tag("gas", "gas_station", "fuel"), T.GAS, 0.8),
    K(_tag("pharmacy", "drugstore"), T.PHARMACY, 0.8),
    K(_tag("movie", "movie_theater", "theater", "bowling", "bowling_alley", "attraction",
           "amusement", "amusement_park", "stadium"), T.ENTERTAINMENT, 0.7),
    K(_tag("lodging", "hotel", "motel"), T.HOTELS, 0.85),
    K(_tag("airport", "travel_agency", "airline"), T.TRAVEL, 0.7),
    K(_tag("electronics"), T.ELECTRONICS, 0.6),
    K(_tag("home_goods", "hardware"), T.HOME_IMPROVEMENT, 0.6),
    K(_tag("department_store", "shopping_mall", "store", "retail"), T.SHOPPING, 0.55),
)


class ProviderTagMapper:
    """
    Ordered tag rules voting on provider type tags.

    Each tag is tested against every rule, so a single tag may vote for more
    than one taxonomy (``convenience_store`` → groceries and shopping).
    """

    def __init__(self, rules: Optional[Iterable[KeywordRule]] = None):
        self.rules: Tuple[KeywordRule, ...] = tuple(DEFAULT_TAG_RULES if rules is None else rules)

    def __len__(self) -> int:
        return len(self.rules)

    def vote(self, tags: Optional[Iterable[str]]) -> Dict[Taxonomy, float]:
        return _fold_votes(self.rules, (fold_text(t) for t in (tags or ())))


# ---------------------------------------------------------------------------
# Food cues (used to rescue generic results for small food vendors)
# ---------------------------------------------------------------------------

RE_COFFEE_CUE = re.compile(r"\b(?:cafe|coffee|espresso|latte)", re.IGNORECASE)
RE_DINING_CUE = re.compile(
    r"\b(?:restaurant|grill|bar|kitchen|pizza|sushi|taco|bbq|deli|bistro|eatery)s?\b",
    re.IGNORECASE,
)


def food_cue(text: Optional[str]) -> Optional[Taxonomy]:
    """
    Return ``coffee`` or ``dining`` when ``text`` carries an unmistakable food cue.

    Coffee cues are checked first.

    Examples
    --------
    >>> food_cue("Joe's Café").value
    'coffee'
    >>> food_cue("Rosa's Taco Kitchen").value
    'dining'
    >>> food_cue("Acme Corp") is None
    True
    """
    folded = fold_text(text)
    if RE_COFFEE_CUE.search(folded):
        return Taxonomy.COFFEE
    if RE_DINING_CUE.search(folded):
        return Taxonomy.DINING
    return None
