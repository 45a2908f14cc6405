# rewardlens/brands.py
"""
Brand registry and chain detection for RewardLens.

This module provides:
- `BrandRegistry`: an ordered, read-only table of well-known brands. A name
  matches a brand when its normalized form equals one of the brand's name
  variants or starts with one (whole words only). No fuzzy distance is used,
  so a brand hit is always trusted with confidence 1.0.
- `detect_chain`: hotel-program and airline detection from free names
  ("Courtyard by Marriott Midtown" → hotel / marriott).

Design notes:
- Registry order is significant: the first registered brand that matches wins.
- Registries can be loaded from a CSV (pandas) for deployments that maintain
  their own brand list; the built-in table is the default.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Tuple

import pandas as pd

from .preproc import contains_words, normalize_name
from .taxonomy import Taxonomy


@dataclass(frozen=True)
class BrandRecord:
    """
    A known brand with its guaranteed taxonomy and category code.

    Attributes
    ----------
    id : str
        Stable brand identifier (e.g. ``"starbucks"``).
    name_variants : frozenset[str]
        Normalized name variants (synonyms) of the brand.
    taxonomy : Taxonomy
        Taxonomy every match of this brand resolves to.
    category_code : int
        Representative merchant category code of the brand.
    """

    id: str
    name_variants: FrozenSet[str]
    taxonomy: Taxonomy
    category_code: int


def _brand(brand_id: str, names: Iterable[str], taxonomy: Taxonomy, code: int) -> BrandRecord:
    variants = frozenset(n for n in (normalize_name(x) for x in names) if n)
    return BrandRecord(id=brand_id, name_variants=variants, taxonomy=taxonomy, category_code=code)


T = Taxonomy

DEFAULT_BRANDS: Tuple[BrandRecord, ...] = (
    _brand("starbucks", ["starbucks", "starbucks coffee"], T.COFFEE, 5814),
    _brand("mcdonalds", ["mcdonald's", "mcdonalds"], T.DINING, 5814),
    _brand("costco", ["costco", "costco wholesale"], T.SHOPPING, 5300),
    _brand("shell", ["shell"], T.GAS, 5541),
    _brand("marriott", ["marriott", "marriott hotel"], T.HOTELS, 7011),
    _brand("walgreens", ["walgreens"], T.PHARMACY, 5912),
    _brand("home_depot", ["home depot", "the home depot"], T.HOME_IMPROVEMENT, 5200),
    # Coffee and bakery
    _brand("dunkin", ["dunkin", "dunkin donuts", "dunkin'"], T.COFFEE, 5814),
    _brand("panera", ["panera", "panera bread"], T.DINING, 5814),
    _brand("peets", ["peet's", "peets", "peet's coffee"], T.COFFEE, 5814),
    # Fast food and quick service
    _brand("burger_king", ["burger king"], T.DINING, 5814),
    _brand("wendys", ["wendy's", "wendys"], T.DINING, 5814),
    _brand("taco_bell", ["taco bell"], T.DINING, 5814),
    _brand("chipotle", ["chipotle", "chipotle mexican grill"], T.DINING, 5814),
    _brand("subway", ["subway"], T.DINING, 5814),
    _brand("chick_fil_a", ["chick fil a", "chick-fil-a", "chik fil a"], T.DINING, 5814),
    _brand("kfc", ["kfc", "kentucky fried chicken"], T.DINING, 5814),
    _brand("panda_express", ["panda express"], T.DINING, 5814),
    _brand("five_guys", ["five guys", "five guys burgers and fries"], T.DINING, 5814),
    _brand("shake_shack", ["shake shack"], T.DINING, 5814),
    _brand("in_n_out", ["in n out", "in-n-out", "in n out burger"], T.DINING, 5814),
    # Pizza chains
    _brand("dominos", ["domino's", "dominos"], T.DINING, 5814),
    _brand("pizza_hut", ["pizza hut"], T.DINING, 5814),
    _brand("papajohns", ["papa john's", "papa johns", "papa johns pizza"], T.DINING, 5814),
    _brand("little_caesars", ["little caesars"], T.DINING, 5814),
    # Casual and sit-down
    _brand("olive_garden", ["olive garden"], T.DINING, 5812),
    _brand("chilis", ["chili's", "chilis"], T.DINING, 5812),
    _brand("applebees", ["applebee's", "applebees"], T.DINING, 5812),
    _brand("outback", ["outback", "outback steakhouse"], T.DINING, 5812),
    _brand("texas_roadhouse", ["texas roadhouse"], T.DINING, 5812),
    _brand("buffalo_wild_wings", ["buffalo wild wings", "bdubs", "b dubs"], T.DINING, 5812),
    _brand("cheesecake_factory", ["cheesecake factory", "the cheesecake factory"], T.DINING, 5812),
    _brand("red_lobster", ["red lobster"], T.DINING, 5812),
    _brand("ihop", ["ihop", "international house of pancakes"], T.DINING, 5812),
    _brand("dennys", ["denny's", "dennys"], T.DINING, 5812),
    _brand("waffle_house", ["waffle house"], T.DINING, 5812),
)


class BrandRegistry:
    """
    Ordered, immutable brand lookup table.

    Parameters
    ----------
    brands : Iterable[BrandRecord], optional
        Records in priority order (defaults to `DEFAULT_BRANDS`).
    """

    def __init__(self, brands: Optional[Iterable[BrandRecord]] = None):
        self._brands: Tuple[BrandRecord, ...] = tuple(DEFAULT_BRANDS if brands is None else brands)
        # Variants sorted once so lookups are deterministic.
        self._index: Tuple[Tuple[BrandRecord, Tuple[str, ...]], ...] = tuple(
            (b, tuple(sorted(b.name_variants))) for b in self._brands
        )

    def __len__(self) -> int:
        return len(self._brands)

    def __iter__(self):
        return iter(self._brands)

    @property
    def brands(self) -> Tuple[BrandRecord, ...]:
        return self._brands

    def get(self, brand_id: str) -> Optional[BrandRecord]:
        return next((b for b in self._brands if b.id == brand_id), None)

    def find_brand(self, name: Optional[str]) -> Optional[BrandRecord]:
        """
        Return the first registered brand whose variant equals, or is a
        whole-word prefix of, the normalized name.

        Examples
        --------
        >>> BrandRegistry().find_brand("Starbucks Reserve Roastery").id
        'starbucks'
        >>> BrandRegistry().find_brand("Shellfish Shack") is None
        True
        """
        norm = normalize_name(name)
        if not norm:
            return None
        for brand, variants in self._index:
            for variant in variants:
                if norm == variant or norm.startswith(variant + " "):
                    return brand
        return None

    @classmethod
    def from_csv(cls, csv_path: Path) -> "BrandRegistry":
        """
        Load a registry from CSV, keeping file order as priority order.

        CSV columns (required):
          - id              : brand identifier
          - name_variants   : ``|``-separated name variants
          - taxonomy        : one of the `Taxonomy` values
          - category_code   : integer merchant category code

        Raises
        ------
        FileNotFoundError
            If the CSV cannot be found.
        ValueError
            If required columns are missing or a taxonomy is unknown.
        """
        csv_path = Path(csv_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"Brand CSV not found: {csv_path}")
        df = pd.read_csv(csv_path, dtype={"id": str, "name_variants": str, "taxonomy": str})
        for col in ("id", "name_variants", "taxonomy", "category_code"):
            if col not in df.columns:
                raise ValueError(f"CSV missing column: {col}")

        records: List[BrandRecord] = []
        for row in df.itertuples(index=False):
            try:
                taxonomy = Taxonomy(str(row.taxonomy).strip())
            except ValueError:
                raise ValueError(f"Unknown taxonomy for brand {row.id!r}: {row.taxonomy!r}") from None
            names = [n for n in str(row.name_variants).split("|") if n.strip()]
            records.append(_brand(str(row.id).strip(), names, taxonomy, int(row.category_code)))
        return cls(records)


# ---------------------------------------------------------------------------
# Chain detection (hotel programs, airlines)
# ---------------------------------------------------------------------------

HOTEL_CHAIN_PATTERNS = {
    "marriott": ["marriott", "bonvoy", "courtyard", "residence inn", "fairfield inn",
                 "springhill suites", "towneplace suites", "aloft", "w hotel", "edition hotel",
                 "st regis", "luxury collection", "ritz carlton", "sheraton", "westin",
                 "le meridien", "tribute portfolio", "autograph collection"],
    "hilton": ["hilton", "hampton inn", "doubletree", "embassy suites", "homewood suites",
               "home2 suites", "waldorf astoria", "conrad", "canopy by hilton",
               "curio collection", "tapestry collection", "motto by hilton", "tru by hilton"],
    "hyatt": ["hyatt", "andaz", "alila", "thompson hotel"],
    "ihg": ["intercontinental", "holiday inn", "crowne plaza", "kimpton", "hotel indigo",
            "even hotels", "avid hotel", "staybridge", "candlewood"],
    "wyndham": ["wyndham", "days inn", "super 8", "ramada", "la quinta", "wingate",
                "baymont", "microtel", "hawthorn suites"],
    "choice": ["choice hotels", "comfort inn", "comfort suites", "quality inn", "sleep inn",
               "clarion", "econo lodge", "rodeway inn", "woodspring suites"],
}

AIRLINE_CHAIN_PATTERNS = {
    "united": ["united airlines", "united air"],
    "delta": ["delta airlines", "delta air"],
    "american": ["american airlines", "american air", "aa"],
    "southwest": ["southwest airlines", "southwest air"],
    "jetblue": ["jetblue", "jet blue"],
    "alaska": ["alaska airlines", "alaska air"],
}

HOTEL = "hotel"
AIRLINE = "airline"


class ChainHit(NamedTuple):
    kind: Optional[str]
    brand: Optional[str]


_NO_CHAIN = ChainHit(None, None)


def _compile_patterns(table) -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    return tuple((brand, tuple(normalize_name(p) for p in pats)) for brand, pats in table.items())


_HOTEL_INDEX = _compile_patterns(HOTEL_CHAIN_PATTERNS)
_AIRLINE_INDEX = _compile_patterns(AIRLINE_CHAIN_PATTERNS)


def detect_chain(name: Optional[str]) -> ChainHit:
    """
    Detect a hotel program or airline from a business name.

    Hotel programs are checked before airlines; patterns match whole words of
    the normalized name.

    Examples
    --------
    >>> detect_chain("Courtyard by Marriott Midtown")
    ChainHit(kind='hotel', brand='marriott')
    >>> detect_chain("Delta Air Lines 0062")
    ChainHit(kind='airline', brand='delta')
    >>> detect_chain("Corner Deli")
    ChainHit(kind=None, brand=None)
    """
    norm = normalize_name(name)
    if not norm:
        return _NO_CHAIN
    for brand, patterns in _HOTEL_INDEX:
        if any(contains_words(norm, p) for p in patterns):
            return ChainHit(HOTEL, brand)
    for brand, patterns in _AIRLINE_INDEX:
        if any(contains_words(norm, p) for p in patterns):
            return ChainHit(AIRLINE, brand)
    return _NO_CHAIN
