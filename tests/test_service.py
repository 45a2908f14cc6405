# tests/test_service.py
from __future__ import annotations

import json

import pytest

from conftest import verdict
from rewardlens.config import EngineConfig
from rewardlens.service import ClassificationService
from rewardlens.taxonomy import RewardCategory


def test_code_first_record():
    svc = ClassificationService()
    out = svc.classify_record({"id": "p1", "name": "Unbranded Diner", "category_code": "5812"})
    assert out["id"] == "p1"
    assert out["taxonomy"] == "dining"
    assert out["confidence"] == pytest.approx(0.95)
    assert out["source"] == "code"
    assert out["stage"] == "code"
    assert out["category_code_candidates"][0] == 5812
    assert len(set(out["category_code_candidates"])) == len(out["category_code_candidates"])


def test_code_classification_keeps_brand():
    clf, stage = ClassificationService().resolve_record({"name": "Starbucks", "category_code": 5814})
    assert stage == "code"
    assert clf.brand_id == "starbucks"


def test_hotel_program_code_collapses_to_hotels():
    out = ClassificationService().classify_record({"name": "Sheraton", "category_code": 3504})
    assert out["taxonomy"] == "hotels"


def test_unmapped_code_goes_through_rules():
    out = ClassificationService().classify_record({"name": "Acme Corp", "category_code": "0000"})
    assert out["taxonomy"] == "shopping"
    assert out["stage"] == "ai_unavailable"


def test_code_without_taxonomy_counterpart_goes_through_rules():
    svc = ClassificationService()
    utility = svc.classify_record({"name": "Acme Corp", "category_code": 4900})
    assert utility["stage"] == "ai_unavailable"
    assert utility["confidence"] == pytest.approx(0.3)

    store = svc.classify_record({"name": "Acme Corp", "category_code": 5311})
    assert store["stage"] == "code"
    assert store["taxonomy"] == "shopping"


def test_single_record_uses_ai(make_provider):
    svc = ClassificationService(provider=make_provider(verdict("electronics", 0.9)))
    out = svc.classify_record({"name": "Mystery Vendor", "types": ["store"]})
    assert out["taxonomy"] == "electronics"
    assert out["stage"] == "ai"
    assert out["lat_ms"] >= 0


def test_batch_order_and_metrics(make_provider):
    provider = make_provider(json.dumps([{"index": 2, "taxonomy": "gas", "confidence": 0.9}]))
    svc = ClassificationService(provider=provider)
    records = [
        {"id": "a", "name": "Starbucks"},
        {"id": "b", "name": "Mystery Vendor 1"},
        {"id": "c", "name": "Unbranded Diner", "mcc": 5812},
        {"id": "d", "name": "Mystery Vendor 2"},
    ]
    report = svc.classify_batch(records)
    results = report["results"]

    assert [r["id"] for r in results] == ["a", "b", "c", "d"]
    assert [r["stage"] for r in results] == ["rule_confident", "ai_invalid", "code", "ai"]
    assert results[3]["taxonomy"] == "gas"
    assert report["metrics"]["coverage"] == pytest.approx(0.75)
    assert report["metrics"]["fallback_rate"] == pytest.approx(0.5)


def test_batch_without_ai():
    report = ClassificationService().classify_batch(["Acme Corp", "Starbucks"])
    assert report["metrics"] == {"coverage": 0.5, "fallback_rate": 0.0}


def test_match_record():
    r = ClassificationService().match_record({"name": "Courtyard by Marriott", "category_code": 7011})
    assert r.taxonomy == RewardCategory.MARRIOTT


def test_config_thresholds_flow_through():
    svc = ClassificationService(config=EngineConfig(default_confidence=0.1, code_confidence=0.9))
    assert svc.classify_record("Acme Corp")["confidence"] == pytest.approx(0.1)
    assert svc.classify_record({"name": "X", "category_code": 5812})["confidence"] == pytest.approx(0.9)
