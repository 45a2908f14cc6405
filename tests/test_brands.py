# tests/test_brands.py
from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from rewardlens.brands import AIRLINE, HOTEL, BrandRegistry, detect_chain
from rewardlens.taxonomy import Taxonomy


def test_find_brand_exact_and_prefix():
    reg = BrandRegistry()
    assert reg.find_brand("Starbucks").id == "starbucks"
    assert reg.find_brand("Starbucks Reserve Roastery").id == "starbucks"
    assert reg.find_brand("McDonald's #4411").id == "mcdonalds"
    assert reg.find_brand("The Home Depot").id == "home_depot"


def test_find_brand_prefix_is_whole_word():
    reg = BrandRegistry()
    assert reg.find_brand("Shellfish Shack") is None
    assert reg.find_brand("Shell Station 12").id == "shell"


def test_find_brand_misses():
    reg = BrandRegistry()
    assert reg.find_brand("Unbranded Diner") is None
    assert reg.find_brand("") is None
    assert reg.find_brand(None) is None


def test_registry_order_is_priority(tmp_path: Path):
    csv_path = tmp_path / "brands.csv"
    pd.DataFrame(
        [
            {"id": "first", "name_variants": "acme", "taxonomy": "dining", "category_code": 5812},
            {"id": "second", "name_variants": "acme|acme market", "taxonomy": "groceries", "category_code": 5411},
        ]
    ).to_csv(csv_path, index=False)

    reg = BrandRegistry.from_csv(csv_path)
    assert len(reg) == 2
    hit = reg.find_brand("Acme Market")
    assert hit.id == "first"
    assert hit.taxonomy == Taxonomy.DINING
    assert reg.get("second").category_code == 5411


def test_from_csv_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        BrandRegistry.from_csv(tmp_path / "missing.csv")

    bad_cols = tmp_path / "bad.csv"
    pd.DataFrame([{"id": "x", "taxonomy": "dining"}]).to_csv(bad_cols, index=False)
    with pytest.raises(ValueError):
        BrandRegistry.from_csv(bad_cols)

    bad_tax = tmp_path / "bad_tax.csv"
    pd.DataFrame(
        [{"id": "x", "name_variants": "x", "taxonomy": "restaurants", "category_code": 5812}]
    ).to_csv(bad_tax, index=False)
    with pytest.raises(ValueError):
        BrandRegistry.from_csv(bad_tax)


def test_detect_chain_hotels_and_airlines():
    assert detect_chain("Courtyard by Marriott Midtown") == (HOTEL, "marriott")
    assert detect_chain("Hampton Inn & Suites") == (HOTEL, "hilton")
    assert detect_chain("Delta Air Lines 0062") == (AIRLINE, "delta")
    assert detect_chain("JetBlue Airways") == (AIRLINE, "jetblue")
    assert detect_chain("Corner Deli") == (None, None)
