# rewardlens/taxonomy.py
"""
RewardLens — Category spaces
============================

Two closed vocabularies are used across the engine:

1) ``Taxonomy``: the canonical reward taxonomy produced by the rule-based and
   AI-backed classifiers (dining, coffee, groceries, ...). ``shopping`` doubles
   as the generic "everything else" bucket when no signal fires.
2) ``RewardCategory``: the richer, brand-aware space used by the merchant
   matcher (hotel programs, airlines, rental cars, streaming, ...).

Both are ``str`` enums so values serialize to plain JSON strings.

Public API
----------
- `Taxonomy`, `RewardCategory`, `DEFAULT_TAXONOMY`
- `category_to_taxonomy(category) -> Taxonomy`
- `has_taxonomy_counterpart(category) -> bool`
- `taxonomy_to_category(taxonomy) -> RewardCategory`
- `HOTEL_FAMILY`, `AIRLINE_FAMILY`, `TRAVEL_FAMILY`
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class Taxonomy(str, Enum):
    DINING = "dining"
    COFFEE = "coffee"
    GROCERIES = "groceries"
    GAS = "gas"
    SHOPPING = "shopping"
    PHARMACY = "pharmacy"
    ENTERTAINMENT = "entertainment"
    TRAVEL = "travel"
    ELECTRONICS = "electronics"
    HOTELS = "hotels"
    HOME_IMPROVEMENT = "home_improvement"


# Generic bucket returned when neither brand nor votes produce anything.
DEFAULT_TAXONOMY = Taxonomy.SHOPPING


class RewardCategory(str, Enum):
    TRAVEL = "travel"
    DINING = "dining"
    GROCERIES = "groceries"
    GAS = "gas"
    DRUGSTORES = "drugstores"
    FLIGHTS = "flights"
    HOTELS = "hotels"
    # Hotel programs
    MARRIOTT = "marriott"
    HILTON = "hilton"
    HYATT = "hyatt"
    IHG = "ihg"
    WYNDHAM = "wyndham"
    CHOICE = "choice"
    # Airlines
    UNITED = "united"
    DELTA = "delta"
    AMERICAN = "american"
    SOUTHWEST = "southwest"
    JETBLUE = "jetblue"
    ALASKA = "alaska"
    SUPERMARKETS = "supermarkets"
    WHOLESALE = "wholesale"
    DEPARTMENT_STORES = "department_stores"
    STREAMING = "streaming"
    ENTERTAINMENT = "entertainment"
    FITNESS = "fitness"
    HEALTHCARE = "healthcare"
    PUBLIC_TRANSPORTATION = "public_transportation"
    RENTAL_CARS = "rental_cars"
    HOME_IMPROVEMENT = "home_improvement"
    UTILITIES = "utilities"
    CELL_PHONE = "cell_phone"
    INTERNET = "internet"
    INSURANCE = "insurance"
    PARKING = "parking"
    TOLLS = "tolls"
    EV_CHARGING = "ev_charging"
    BUSINESS = "business"
    EVERYTHING_ELSE = "everything_else"


HOTEL_FAMILY: FrozenSet[RewardCategory] = frozenset({
    RewardCategory.MARRIOTT,
    RewardCategory.HILTON,
    RewardCategory.HYATT,
    RewardCategory.IHG,
    RewardCategory.WYNDHAM,
    RewardCategory.CHOICE,
})

AIRLINE_FAMILY: FrozenSet[RewardCategory] = frozenset({
    RewardCategory.UNITED,
    RewardCategory.DELTA,
    RewardCategory.AMERICAN,
    RewardCategory.SOUTHWEST,
    RewardCategory.JETBLUE,
    RewardCategory.ALASKA,
})

TRAVEL_FAMILY: FrozenSet[RewardCategory] = (
    frozenset({RewardCategory.FLIGHTS, RewardCategory.HOTELS, RewardCategory.RENTAL_CARS})
    | HOTEL_FAMILY
    | AIRLINE_FAMILY
)


# ---------------------------------------------------------------------------
# Bridges between the two spaces
# ---------------------------------------------------------------------------

_TAXONOMY_TO_CATEGORY: Dict[Taxonomy, RewardCategory] = {
    Taxonomy.DINING: RewardCategory.DINING,
    Taxonomy.COFFEE: RewardCategory.DINING,
    Taxonomy.GROCERIES: RewardCategory.GROCERIES,
    Taxonomy.GAS: RewardCategory.GAS,
    Taxonomy.SHOPPING: RewardCategory.EVERYTHING_ELSE,
    Taxonomy.PHARMACY: RewardCategory.DRUGSTORES,
    Taxonomy.ENTERTAINMENT: RewardCategory.ENTERTAINMENT,
    Taxonomy.TRAVEL: RewardCategory.TRAVEL,
    Taxonomy.ELECTRONICS: RewardCategory.EVERYTHING_ELSE,
    Taxonomy.HOTELS: RewardCategory.HOTELS,
    Taxonomy.HOME_IMPROVEMENT: RewardCategory.HOME_IMPROVEMENT,
}

_CATEGORY_TO_TAXONOMY: Dict[RewardCategory, Taxonomy] = {
    RewardCategory.DINING: Taxonomy.DINING,
    RewardCategory.GROCERIES: Taxonomy.GROCERIES,
    RewardCategory.SUPERMARKETS: Taxonomy.GROCERIES,
    RewardCategory.GAS: Taxonomy.GAS,
    RewardCategory.EV_CHARGING: Taxonomy.GAS,
    RewardCategory.DRUGSTORES: Taxonomy.PHARMACY,
    RewardCategory.ENTERTAINMENT: Taxonomy.ENTERTAINMENT,
    RewardCategory.STREAMING: Taxonomy.ENTERTAINMENT,
    RewardCategory.HOME_IMPROVEMENT: Taxonomy.HOME_IMPROVEMENT,
    RewardCategory.HOTELS: Taxonomy.HOTELS,
    RewardCategory.TRAVEL: Taxonomy.TRAVEL,
    RewardCategory.FLIGHTS: Taxonomy.TRAVEL,
    RewardCategory.RENTAL_CARS: Taxonomy.TRAVEL,
    RewardCategory.PUBLIC_TRANSPORTATION: Taxonomy.TRAVEL,
    RewardCategory.WHOLESALE: Taxonomy.SHOPPING,
    RewardCategory.DEPARTMENT_STORES: Taxonomy.SHOPPING,
}


def taxonomy_to_category(taxonomy: Taxonomy) -> RewardCategory:
    """Map a classifier taxonomy into the brand-aware reward space."""
    return _TAXONOMY_TO_CATEGORY[Taxonomy(taxonomy)]


def category_to_taxonomy(category: RewardCategory) -> Taxonomy:
    """
    Collapse a reward category into the classifier taxonomy.

    Hotel programs fold into ``hotels``, airlines into ``travel``; categories
    with no taxonomy counterpart (utilities, insurance, ...) land in the
    generic default.

    Examples
    --------
    >>> category_to_taxonomy(RewardCategory.MARRIOTT).value
    'hotels'
    >>> category_to_taxonomy(RewardCategory.UTILITIES).value
    'shopping'
    """
    category = RewardCategory(category)
    if category in HOTEL_FAMILY:
        return Taxonomy.HOTELS
    if category in AIRLINE_FAMILY:
        return Taxonomy.TRAVEL
    return _CATEGORY_TO_TAXONOMY.get(category, DEFAULT_TAXONOMY)


def has_taxonomy_counterpart(category: RewardCategory) -> bool:
    """False for categories that only collapse into the generic default."""
    category = RewardCategory(category)
    return category in HOTEL_FAMILY or category in AIRLINE_FAMILY or category in _CATEGORY_TO_TAXONOMY
