# rewardlens/preproc.py
"""
RewardLens — Name Preprocessing
===============================

Purpose
-------
Turn raw merchant/business names into stable comparison keys so the rest of the
engine (brand registry, keyword rules, fuzzy matching, cache keys) sees clean and
consistent inputs.

Design goals
------------
1) **Folding**: ASCII transliteration (``Café`` → ``cafe``) and lowercasing.
2) **Normalization**: strip trailing corporate suffixes (Inc., LLC, Corp., Co.),
   drop apostrophes, turn remaining punctuation into spaces, collapse whitespace.
   ``normalize_name`` is idempotent.
3) **Canonicalization**: resolve well-known aliases ("mickey ds", "wal-mart") to a
   canonical business key using a static alias table.
4) **Record coercion**: accept place records as dataclasses, dicts or bare names.

Public API
----------
- `fold_text(s: Optional[str]) -> str`
- `normalize_name(name: Optional[str]) -> str`
- `canonicalize(name: Optional[str]) -> str`
- `is_known_business(canonical: str) -> bool`
- `tokenize(s: str) -> list[str]`
- `PlaceRecord`, `coerce_record(obj) -> PlaceRecord`

Notes
-----
- Uses `regex` (a drop-in replacement for `re`) and `unidecode` for accent stripping.
- Alias containment is evaluated on whole words, so short aliases never fire
  inside longer words.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union

import regex as re
from unidecode import unidecode


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

RE_APOSTROPHE = re.compile(r"['`]")
RE_NONWORD = re.compile(r"[^a-z0-9 ]+")
RE_WS = re.compile(r"\s+")
RE_TOKEN = re.compile(r"[a-z0-9]+")

# Any run of trailing corporate suffixes, each preceded by whitespace.
RE_CORP_SUFFIX = re.compile(r"(?:\s+(?:inc|llc|ltd|corp|corporation|company|co))+$")


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def fold_text(s: Optional[str]) -> str:
    """
    Lowercase, de-accent (ASCII) and collapse whitespace.

    Used for free text (place descriptions, provider tags) where punctuation may
    still carry meaning for keyword patterns.

    Examples
    --------
    >>> fold_text("  Joe's   CAFÉ ")
    "joe's cafe"
    """
    s = unidecode(s or "")
    s = s.strip().lower()
    return RE_WS.sub(" ", s)


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a business name for comparison.

    Steps
    -----
    1) Fold to lowercase ASCII.
    2) Drop apostrophes (``joe's`` → ``joes``).
    3) Replace every other non-alphanumeric character with a space.
    4) Collapse whitespace and trim.
    5) Strip trailing corporate suffixes (``inc``, ``llc``, ``ltd``, ``corp``,
       ``corporation``, ``company``, ``co``), repeatedly.

    The result contains only ``[a-z0-9 ]`` and never ends in a suffix token, so
    ``normalize_name(normalize_name(x)) == normalize_name(x)``.

    Examples
    --------
    >>> normalize_name("The Home Depot, Inc.")
    'the home depot'
    >>> normalize_name("McDonald's")
    'mcdonalds'
    >>> normalize_name("Costco")
    'costco'
    """
    s = fold_text(name)
    s = RE_APOSTROPHE.sub("", s)
    s = RE_NONWORD.sub(" ", s)
    s = RE_WS.sub(" ", s).strip()
    return RE_CORP_SUFFIX.sub("", s)


def tokenize(s: str) -> List[str]:
    """Alphanumeric tokens of an already folded/normalized string."""
    return RE_TOKEN.findall(s)


def contains_words(haystack: str, needle: str) -> bool:
    """True when ``needle`` occurs in ``haystack`` on word boundaries."""
    if not needle or not haystack:
        return False
    return f" {needle} " in f" {haystack} "


# ---------------------------------------------------------------------------
# Alias table (canonical business key → common variations)
# ---------------------------------------------------------------------------

BUSINESS_ALIASES: Dict[str, Tuple[str, ...]] = {
    # Fast food
    "mcdonalds": ("mcdonald", "mc donalds", "mickey d", "mickey ds", "mcd"),
    "burger king": ("burger king restaurant",),
    "wendys": ("wendy", "wendys restaurant"),
    "taco bell": ("tacobell", "tbell"),
    "chick fil a": ("chickfila", "chic fil a", "chick fila", "cfa"),
    "chipotle": ("chipotle mexican grill", "chipotle grill"),
    "five guys": ("5 guys", "five guys burgers", "5 guys burgers"),
    "in n out": ("in-n-out", "innout", "in and out"),
    "shake shack": ("shakeshack",),
    "panera": ("panera bread", "panera cafe"),
    "subway": ("subway restaurant", "subway sandwiches"),
    "dunkin": ("dunkin donuts", "dunkin doughnuts"),
    "starbucks": ("starbucks coffee", "sbux"),
    # Groceries and wholesale
    "walmart": ("wal mart", "wal-mart", "walmart supercenter"),
    "target": ("target store", "super target"),
    "costco": ("costco wholesale", "costco warehouse"),
    "sams club": ("sam's club", "sams", "sam club"),
    "whole foods": ("whole foods market", "wholefoods", "wfm"),
    "trader joes": ("trader joe", "traders joes"),
    "kroger": ("krogers", "kroger grocery"),
    "safeway": ("safeway grocery", "safeway store"),
    "publix": ("publix super market", "publix supermarket"),
    "aldi": ("aldi foods", "aldi grocery"),
    "lidl": ("lidl grocery", "lidl us"),
    "heb": ("h-e-b", "h e b", "heb grocery"),
    # Gas stations
    "shell": ("shell gas", "shell station", "shell oil"),
    "chevron": ("chevron gas", "chevron station"),
    "exxon": ("exxon mobil", "exxonmobil", "exxon gas"),
    "mobil": ("mobil gas", "mobil station"),
    "bp": ("bp gas", "british petroleum", "bp station"),
    "texaco": ("texaco gas", "texaco station"),
    "76": ("76 gas", "seventy six", "union 76"),
    "circle k": ("circlek", "circle-k"),
    "wawa": ("wawa gas", "wawa convenience"),
    "sheetz": ("sheetz gas", "sheetz store"),
    "quiktrip": ("quik trip", "quick trip"),
    "racetrac": ("race trac", "raceway"),
    # Drugstores
    "cvs": ("cvs pharmacy", "cvs health", "cvs store"),
    "walgreens": ("walgreens pharmacy", "walgreens drugstore"),
    "rite aid": ("riteaid", "rite-aid", "rite aid pharmacy"),
    # Home improvement
    "home depot": ("homedepot", "the home depot"),
    "lowes": ("lowe's", "lowes home improvement"),
    "menards": ("menards home improvement",),
    "ace hardware": ("ace", "ace hardware store"),
    # Hotels
    "marriott": ("marriott hotel", "marriott bonvoy", "jw marriott"),
    "hilton": ("hilton hotel", "hilton honors"),
    "hyatt": ("hyatt hotel", "hyatt hotels", "park hyatt", "grand hyatt"),
    "ihg": ("ihg hotel", "intercontinental", "holiday inn"),
    "wyndham": ("wyndham hotel", "wyndham rewards"),
    "best western": ("bestwestern", "best western plus", "best western premier"),
    "hampton inn": ("hampton", "hampton by hilton"),
    "holiday inn": ("holiday inn express", "holidayinn"),
    "courtyard": ("courtyard marriott", "courtyard by marriott"),
    "residence inn": ("residence inn marriott", "residence inn by marriott"),
    "fairfield inn": ("fairfield", "fairfield by marriott"),
    "doubletree": ("double tree", "doubletree by hilton"),
    "embassy suites": ("embassy suites by hilton", "embassysuites"),
    # Airlines
    "american airlines": ("american", "american air"),
    "united airlines": ("united", "united air"),
    "delta": ("delta airlines", "delta air lines"),
    "southwest": ("southwest airlines", "swa"),
    "jetblue": ("jet blue", "jetblue airways"),
    "alaska airlines": ("alaska air",),
    "spirit": ("spirit airlines",),
    "frontier": ("frontier airlines",),
    # Ride share and delivery
    "uber": ("uber ride", "uber rides", "uber technologies"),
    "lyft": ("lyft ride", "lyft rides"),
    "uber eats": ("ubereats", "uber eat"),
    "doordash": ("door dash", "doordash delivery"),
    "grubhub": ("grub hub", "grubhub delivery"),
    "instacart": ("insta cart", "instacart delivery"),
    # Streaming and entertainment
    "netflix": ("netflix streaming", "netflix subscription"),
    "hulu": ("hulu streaming", "hulu subscription"),
    "disney plus": ("disney+", "disneyplus", "disney+ streaming"),
    "hbo max": ("hbomax", "hbo", "max streaming"),
    "spotify": ("spotify premium", "spotify music"),
    "apple music": ("applemusic", "apple music subscription"),
    "youtube": ("youtube premium", "youtube music"),
    "amazon prime": ("prime video", "amazon prime video"),
    # Electronics and marketplaces
    "apple": ("apple store", "apple inc"),
    "best buy": ("bestbuy", "best buy electronics"),
    "amazon": ("amazon.com", "amzn"),
}


def _build_alias_index() -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    index = []
    for canonical, aliases in BUSINESS_ALIASES.items():
        forms = [normalize_name(canonical)]
        forms.extend(normalize_name(a) for a in aliases)
        index.append((canonical, tuple(f for f in dict.fromkeys(forms) if f)))
    return tuple(index)


# Built once at import; read-only afterwards.
_ALIAS_INDEX = _build_alias_index()
_CANONICAL_KEYS = frozenset(BUSINESS_ALIASES)


def is_known_business(canonical: str) -> bool:
    """True if ``canonical`` is a key of the alias table."""
    return canonical in _CANONICAL_KEYS


def canonicalize(name: Optional[str]) -> str:
    """
    Resolve a business name to its canonical key.

    Strategy
    --------
    1) Normalize the name. Empty names stay empty.
    2) If it is already a canonical key, or exactly equals one of its
       normalized aliases, return that key.
    3) Otherwise collect every alias that is contained in the name, or that
       contains the name, on word boundaries. The longest such alias wins
       (table order breaks ties).
    4) If nothing matched, return the normalized name unchanged.

    Examples
    --------
    >>> canonicalize("Wal-Mart Supercenter #1234")
    'walmart'
    >>> canonicalize("Mickey D's")
    'mcdonalds'
    >>> canonicalize("Unbranded Diner")
    'unbranded diner'
    """
    normalized = normalize_name(name)
    if not normalized:
        return normalized
    if normalized in _CANONICAL_KEYS:
        return normalized

    for canonical, forms in _ALIAS_INDEX:
        if normalized in forms:
            return canonical

    best: Optional[str] = None
    best_len = 0
    for canonical, forms in _ALIAS_INDEX:
        for form in forms:
            if len(form) <= best_len:
                continue
            if contains_words(normalized, form) or contains_words(form, normalized):
                best, best_len = canonical, len(form)
    return best if best is not None else normalized


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------

CodeLike = Union[int, str]


@dataclass(frozen=True)
class PlaceRecord:
    """
    Raw merchant/place record handed over by the place-search layer.

    Attributes
    ----------
    name : str
        Business name as reported by the provider.
    provider_type_tags : tuple[str, ...]
        Provider-supplied type tags (e.g. ``"restaurant"``, ``"gas_station"``).
    place_text : str | None
        Longer free-text place name/description, if any.
    category_code : int | str | None
        Four-digit merchant category code, if known.
    address : str | None
        Street address; only used to enrich AI prompts.
    record_id : str | None
        Caller-side identifier, echoed back in batch results.
    """

    name: str
    provider_type_tags: Tuple[str, ...] = field(default_factory=tuple)
    place_text: Optional[str] = None
    category_code: Optional[CodeLike] = None
    address: Optional[str] = None
    record_id: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise TypeError(f"name must be a str, got {type(self.name).__name__}")
        object.__setattr__(self, "provider_type_tags", tuple(self.provider_type_tags or ()))


def coerce_record(obj: Union[PlaceRecord, Mapping, str]) -> PlaceRecord:
    """
    Build a `PlaceRecord` from a record, a dict or a bare name.

    Dict keys follow the place-search payload: ``name``, ``provider_type_tags``
    (``types`` is accepted as an alias), ``place_text``, ``category_code``
    (or ``mcc``), ``address`` and ``id``.

    Raises
    ------
    TypeError
        If ``obj`` is none of the accepted shapes.
    """
    if isinstance(obj, PlaceRecord):
        return obj
    if isinstance(obj, str):
        return PlaceRecord(name=obj)
    if isinstance(obj, Mapping):
        tags = obj.get("provider_type_tags")
        if tags is None:
            tags = obj.get("types") or ()
        code = obj.get("category_code")
        if code is None:
            code = obj.get("mcc")
        return PlaceRecord(
            name=obj.get("name", ""),
            provider_type_tags=tuple(tags),
            place_text=obj.get("place_text"),
            category_code=code,
            address=obj.get("address"),
            record_id=obj.get("id"),
        )
    raise TypeError(f"cannot build a PlaceRecord from {type(obj).__name__}")
