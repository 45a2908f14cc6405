# tests/test_preproc.py
from __future__ import annotations

import pytest

from rewardlens.preproc import (
    PlaceRecord,
    canonicalize,
    coerce_record,
    fold_text,
    is_known_business,
    normalize_name,
)

SAMPLES = [
    "The Home Depot, Inc.",
    "McDonald's",
    "  Joe's   CAFÉ ",
    "Acme Corp",
    "Acme Co. Inc.",
    "Costco Wholesale",
    "Wal-Mart Supercenter #1234",
    "",
    "!!!",
    "Inc",
    "Chick-fil-A",
]


@pytest.mark.parametrize("raw", SAMPLES)
def test_normalize_is_idempotent(raw):
    once = normalize_name(raw)
    assert normalize_name(once) == once


def test_normalize_strips_suffixes_and_punctuation():
    assert normalize_name("The Home Depot, Inc.") == "the home depot"
    assert normalize_name("Acme Co. Inc.") == "acme"
    assert normalize_name("McDonald's") == "mcdonalds"
    assert normalize_name("Chick-fil-A") == "chick fil a"


def test_normalize_keeps_words_ending_in_suffix_letters():
    assert normalize_name("Costco") == "costco"
    assert normalize_name("Disco Inc") == "disco"


def test_fold_text_transliterates():
    assert fold_text("  Joe's   CAFÉ ") == "joe's cafe"
    assert fold_text(None) == ""


def test_canonicalize_exact_alias_and_containment():
    assert canonicalize("Wal-Mart") == "walmart"
    assert canonicalize("Mickey D's") == "mcdonalds"
    assert canonicalize("Wal-Mart Supercenter #1234") == "walmart"
    assert canonicalize("Starbucks") == "starbucks"


def test_canonicalize_unknown_returns_normalized():
    assert canonicalize("Unbranded Diner") == "unbranded diner"
    assert canonicalize("") == ""


def test_canonicalize_does_not_match_inside_words():
    # "bp" must not fire inside other tokens
    assert canonicalize("Bpx Outfitters") == "bpx outfitters"


def test_known_business():
    assert is_known_business("walmart")
    assert not is_known_business("unbranded diner")


def test_place_record_rejects_non_string_name():
    with pytest.raises(TypeError):
        PlaceRecord(name=123)


def test_coerce_record_shapes():
    rec = coerce_record({"name": "Shell", "types": ["gas_station"], "mcc": "5541", "id": "p1"})
    assert rec.provider_type_tags == ("gas_station",)
    assert rec.category_code == "5541"
    assert rec.record_id == "p1"
    assert coerce_record("Shell").name == "Shell"
    assert coerce_record(rec) is rec
    with pytest.raises(TypeError):
        coerce_record(42)
