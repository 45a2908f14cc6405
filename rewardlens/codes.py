# rewardlens/codes.py
"""
RewardLens — Merchant Category Codes
====================================

Purpose
-------
Map standardized four-digit merchant category codes (MCC) to reward categories.
When a code is present it is the highest-authority signal in the engine.

Lookup order
------------
1) Exact code table.
2) Ordered inclusive ranges; the first containing range wins.

Secondary lookups resolve brand-specific sub-codes: hotel chains (3500–3999)
and airlines (3000–3299). Codes outside the known sub-codes resolve to a
generic marker (`GENERIC_HOTEL` / `GENERIC_AIRLINE`).

The reverse mapping (taxonomy → candidate codes) feeds the
``category_code_candidates`` of every classification.

Public API
----------
- `parse_code(code) -> int | None`
- `CategoryCodeMap.lookup(code) -> RewardCategory | None`
- `CategoryCodeMap.hotel_brand_for_code(code) -> str`
- `CategoryCodeMap.airline_brand_for_code(code) -> str`
- `CategoryCodeMap.hotel_program_category(brand) -> RewardCategory | None`
- `CategoryCodeMap.airline_category(brand) -> RewardCategory | None`
- `CategoryCodeMap.codes_for(taxonomy) -> tuple[int, ...]`
"""

from __future__ import annotations

from typing import Dict, NamedTuple, Optional, Tuple, Union

from .taxonomy import DEFAULT_TAXONOMY, RewardCategory, Taxonomy

GENERIC_HOTEL = "general_hotel"
GENERIC_AIRLINE = "general_airline"

R = RewardCategory


# ---------------------------------------------------------------------------
# Exact codes
# ---------------------------------------------------------------------------

CODE_TO_CATEGORY: Dict[int, RewardCategory] = {
    # Airlines
    3000: R.FLIGHTS, 3001: R.FLIGHTS, 3002: R.FLIGHTS, 3003: R.FLIGHTS,
    4511: R.FLIGHTS,
    # Hotels and motels
    3500: R.HOTELS, 3501: R.HOTELS, 7011: R.HOTELS,
    # Car rental
    3351: R.RENTAL_CARS, 7512: R.RENTAL_CARS, 7513: R.RENTAL_CARS,
    # Restaurants, bars, fast food
    5812: R.DINING, 5813: R.DINING, 5814: R.DINING,
    # Grocery and specialty food stores
    5411: R.GROCERIES, 5422: R.GROCERIES, 5441: R.GROCERIES,
    5451: R.GROCERIES, 5462: R.GROCERIES, 5499: R.GROCERIES,
    # Gas
    5541: R.GAS, 5542: R.GAS, 5983: R.GAS,
    # Drugstores
    5122: R.DRUGSTORES, 5292: R.DRUGSTORES, 5912: R.DRUGSTORES,
    # Home improvement
    5200: R.HOME_IMPROVEMENT, 5211: R.HOME_IMPROVEMENT, 5231: R.HOME_IMPROVEMENT,
    5251: R.HOME_IMPROVEMENT, 5261: R.HOME_IMPROVEMENT,
    # Wholesale clubs and discount stores
    5300: R.WHOLESALE, 5310: R.WHOLESALE, 5399: R.WHOLESALE,
    # Entertainment
    7832: R.ENTERTAINMENT, 7841: R.ENTERTAINMENT, 7911: R.ENTERTAINMENT,
    7922: R.ENTERTAINMENT, 7929: R.ENTERTAINMENT, 7932: R.ENTERTAINMENT,
    7933: R.ENTERTAINMENT, 7991: R.ENTERTAINMENT, 7992: R.ENTERTAINMENT,
    7993: R.ENTERTAINMENT, 7994: R.ENTERTAINMENT, 7996: R.ENTERTAINMENT,
    7998: R.ENTERTAINMENT, 7999: R.ENTERTAINMENT,
    # Digital goods
    5815: R.STREAMING, 5816: R.STREAMING, 5817: R.STREAMING, 5818: R.STREAMING,
    # Utilities and telecom
    4900: R.UTILITIES, 4812: R.CELL_PHONE, 4814: R.CELL_PHONE, 4816: R.INTERNET,
    # Transit
    4111: R.PUBLIC_TRANSPORTATION, 4112: R.PUBLIC_TRANSPORTATION,
    4121: R.PUBLIC_TRANSPORTATION, 4131: R.PUBLIC_TRANSPORTATION,
    4784: R.TOLLS,
    5552: R.EV_CHARGING,
    7523: R.PARKING,
    # Office supplies, shipping
    5943: R.BUSINESS, 5044: R.BUSINESS, 5045: R.BUSINESS, 5047: R.BUSINESS,
    5111: R.BUSINESS, 4215: R.BUSINESS, 4225: R.BUSINESS,
    # Insurance
    5960: R.INSURANCE, 6300: R.INSURANCE,
    # Fitness and membership clubs
    7941: R.FITNESS, 7997: R.FITNESS,
    # Healthcare
    8011: R.HEALTHCARE, 8021: R.HEALTHCARE, 8031: R.HEALTHCARE, 8041: R.HEALTHCARE,
    8042: R.HEALTHCARE, 8049: R.HEALTHCARE, 8050: R.HEALTHCARE, 8062: R.HEALTHCARE,
    8071: R.HEALTHCARE, 8099: R.HEALTHCARE,
    # Department stores and apparel
    5311: R.DEPARTMENT_STORES, 5611: R.DEPARTMENT_STORES, 5621: R.DEPARTMENT_STORES,
    5631: R.DEPARTMENT_STORES, 5641: R.DEPARTMENT_STORES, 5651: R.DEPARTMENT_STORES,
    5661: R.DEPARTMENT_STORES, 5681: R.DEPARTMENT_STORES, 5691: R.DEPARTMENT_STORES,
    5699: R.DEPARTMENT_STORES,
}


class CodeRange(NamedTuple):
    start: int
    end: int
    category: RewardCategory
    description: str


CODE_RANGES: Tuple[CodeRange, ...] = (
    CodeRange(3000, 3299, R.FLIGHTS, "Airlines"),
    CodeRange(3351, 3441, R.RENTAL_CARS, "Car Rental"),
    CodeRange(3500, 3999, R.HOTELS, "Hotels"),
    CodeRange(5411, 5499, R.GROCERIES, "Grocery Stores"),
    CodeRange(5812, 5814, R.DINING, "Restaurants"),
    CodeRange(5541, 5542, R.GAS, "Gas Stations"),
    CodeRange(5200, 5261, R.HOME_IMPROVEMENT, "Home Improvement"),
    CodeRange(5912, 5912, R.DRUGSTORES, "Drugstores"),
    CodeRange(5815, 5818, R.STREAMING, "Digital Goods"),
)


# ---------------------------------------------------------------------------
# Brand-specific sub-codes
# ---------------------------------------------------------------------------

AIRLINE_CODES: Dict[int, str] = {
    3000: "united",
    3001: "american",
    3005: "delta",
    3006: "southwest",
    3058: "delta",
    3065: "jetblue",
    3136: "alaska",
}

HOTEL_CODES: Dict[int, str] = {
    3501: "hilton", 3502: "marriott", 3503: "hyatt", 3504: "sheraton",
    3505: "best_western", 3506: "holiday_inn", 3507: "ramada", 3508: "howard_johnson",
    3509: "red_roof", 3510: "la_quinta", 3512: "wyndham", 3513: "westin",
    3515: "fairmont", 3516: "omni", 3517: "loews", 3518: "radisson",
    3519: "red_lion", 3520: "intercontinental", 3522: "doubletree", 3523: "embassy_suites",
    3527: "extended_stay", 3528: "renaissance", 3530: "residence_inn", 3531: "courtyard",
    3532: "fairfield_inn", 3533: "marriott_vacation", 3534: "hampton_inn", 3535: "embassy_suites",
    3536: "doubletree", 3537: "homewood_suites", 3542: "club_med", 3543: "four_seasons",
    3544: "ritz_carlton", 3546: "w_hotels", 3548: "st_regis", 3550: "luxury_collection",
    3554: "le_meridien", 3615: "aloft", 3616: "element", 3617: "tribute",
    3635: "park_hyatt", 3636: "grand_hyatt", 3637: "hyatt_regency", 3638: "hyatt_place",
    3639: "hyatt_house", 3640: "andaz", 3641: "thompson",
}

# Chain → loyalty program that earns on it.
HOTEL_PROGRAMS: Dict[str, RewardCategory] = {
    "marriott": R.MARRIOTT, "sheraton": R.MARRIOTT, "westin": R.MARRIOTT,
    "renaissance": R.MARRIOTT, "residence_inn": R.MARRIOTT, "courtyard": R.MARRIOTT,
    "fairfield_inn": R.MARRIOTT, "marriott_vacation": R.MARRIOTT, "ritz_carlton": R.MARRIOTT,
    "w_hotels": R.MARRIOTT, "st_regis": R.MARRIOTT, "luxury_collection": R.MARRIOTT,
    "le_meridien": R.MARRIOTT, "aloft": R.MARRIOTT, "element": R.MARRIOTT,
    "tribute": R.MARRIOTT,
    "hilton": R.HILTON, "doubletree": R.HILTON, "embassy_suites": R.HILTON,
    "hampton_inn": R.HILTON, "homewood_suites": R.HILTON,
    "hyatt": R.HYATT, "park_hyatt": R.HYATT, "grand_hyatt": R.HYATT,
    "hyatt_regency": R.HYATT, "hyatt_place": R.HYATT, "hyatt_house": R.HYATT,
    "andaz": R.HYATT, "thompson": R.HYATT,
    "ihg": R.IHG, "holiday_inn": R.IHG, "intercontinental": R.IHG,
    "wyndham": R.WYNDHAM, "ramada": R.WYNDHAM, "howard_johnson": R.WYNDHAM,
    "la_quinta": R.WYNDHAM,
    "choice": R.CHOICE,
}

AIRLINE_CATEGORIES: Dict[str, RewardCategory] = {
    "united": R.UNITED,
    "delta": R.DELTA,
    "american": R.AMERICAN,
    "southwest": R.SOUTHWEST,
    "jetblue": R.JETBLUE,
    "alaska": R.ALASKA,
}


# ---------------------------------------------------------------------------
# Taxonomy → candidate codes
# ---------------------------------------------------------------------------

TAXONOMY_TO_CODES: Dict[Taxonomy, Tuple[int, ...]] = {
    Taxonomy.DINING: (5812, 5814),
    Taxonomy.COFFEE: (5814,),
    Taxonomy.GROCERIES: (5411,),
    Taxonomy.GAS: (5541, 5542),
    Taxonomy.SHOPPING: (5311, 5300),
    Taxonomy.PHARMACY: (5912,),
    Taxonomy.ENTERTAINMENT: (7832, 7922, 7996, 7999),
    Taxonomy.TRAVEL: (4722, 4112, 4111),
    Taxonomy.ELECTRONICS: (5732,),
    Taxonomy.HOTELS: (7011,),
    Taxonomy.HOME_IMPROVEMENT: (5200, 5251, 5211),
}


CodeLike = Union[int, str]


def parse_code(code: Optional[CodeLike]) -> Optional[int]:
    """
    Coerce a category code to ``int``.

    ``None``, non-numeric strings and values outside 0–9999 mean "no code".

    Raises
    ------
    TypeError
        If ``code`` is neither ``int``, ``str`` nor ``None``.

    Examples
    --------
    >>> parse_code("0742"), parse_code(5812), parse_code("n/a")
    (742, 5812, None)
    """
    if code is None:
        return None
    if isinstance(code, bool) or not isinstance(code, (int, str)):
        raise TypeError(f"category code must be int or str, got {type(code).__name__}")
    if isinstance(code, str):
        code = code.strip()
        if not code.isdigit():
            return None
    value = int(code)
    return value if 0 <= value <= 9999 else None


class CategoryCodeMap:
    """
    Read-only code → category lookup with brand sub-codes and reverse mapping.

    All tables default to the module-level constants; custom tables can be
    injected for tests or deployments.
    """

    def __init__(
        self,
        exact: Optional[Dict[int, RewardCategory]] = None,
        ranges: Optional[Tuple[CodeRange, ...]] = None,
        hotel_codes: Optional[Dict[int, str]] = None,
        airline_codes: Optional[Dict[int, str]] = None,
        taxonomy_codes: Optional[Dict[Taxonomy, Tuple[int, ...]]] = None,
    ):
        self.exact = dict(CODE_TO_CATEGORY if exact is None else exact)
        self.ranges = tuple(CODE_RANGES if ranges is None else ranges)
        self.hotel_codes = dict(HOTEL_CODES if hotel_codes is None else hotel_codes)
        self.airline_codes = dict(AIRLINE_CODES if airline_codes is None else airline_codes)
        self.taxonomy_codes = dict(TAXONOMY_TO_CODES if taxonomy_codes is None else taxonomy_codes)

    def lookup(self, code: Optional[CodeLike]) -> Optional[RewardCategory]:
        """
        Category for ``code``: exact table first, then the first containing range.

        Examples
        --------
        >>> CategoryCodeMap().lookup(5812).value
        'dining'
        >>> CategoryCodeMap().lookup("3750").value
        'hotels'
        >>> CategoryCodeMap().lookup(1234) is None
        True
        """
        value = parse_code(code)
        if value is None:
            return None
        if value in self.exact:
            return self.exact[value]
        for rng in self.ranges:
            if rng.start <= value <= rng.end:
                return rng.category
        return None

    def hotel_brand_for_code(self, code: Optional[CodeLike]) -> str:
        value = parse_code(code)
        return self.hotel_codes.get(value, GENERIC_HOTEL) if value is not None else GENERIC_HOTEL

    def airline_brand_for_code(self, code: Optional[CodeLike]) -> str:
        value = parse_code(code)
        return self.airline_codes.get(value, GENERIC_AIRLINE) if value is not None else GENERIC_AIRLINE

    @staticmethod
    def hotel_program_category(brand: Optional[str]) -> Optional[RewardCategory]:
        """Loyalty-program category for a hotel chain id (``sheraton`` → marriott)."""
        return HOTEL_PROGRAMS.get(brand or "")

    @staticmethod
    def airline_category(brand: Optional[str]) -> Optional[RewardCategory]:
        return AIRLINE_CATEGORIES.get(brand or "")

    def codes_for(self, taxonomy: Taxonomy) -> Tuple[int, ...]:
        """
        Candidate codes for a taxonomy; never empty (falls back to the codes of
        the default taxonomy).
        """
        codes = self.taxonomy_codes.get(Taxonomy(taxonomy)) or ()
        if not codes:
            codes = self.taxonomy_codes.get(DEFAULT_TAXONOMY) or TAXONOMY_TO_CODES[DEFAULT_TAXONOMY]
        return tuple(codes)
