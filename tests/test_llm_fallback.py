# tests/test_llm_fallback.py
from __future__ import annotations

import json
import threading

import pytest

from conftest import verdict
from rewardlens.cache import TTLCache, make_cache_key
from rewardlens.codes import CategoryCodeMap
from rewardlens.config import EngineConfig
from rewardlens.llm_fallback import (
    AIFallbackClassifier,
    Stage,
    parse_batch,
    parse_verdict,
    strip_fences,
)
from rewardlens.preproc import PlaceRecord
from rewardlens.taxonomy import Taxonomy as T

UNSURE = [f"Mystery Vendor {n}" for n in range(1, 6)]  # default taxonomy at 0.3


def _ai(provider=None, clock=None, **cfg) -> AIFallbackClassifier:
    config = EngineConfig(**cfg)
    cache = TTLCache(config.cache_max_entries, config.cache_ttl_seconds, clock=clock) if clock else None
    return AIFallbackClassifier(provider=provider, cache=cache, config=config)


# ------------------------------------------------------------------ parsing

def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences('  {"a": 1} ') == '{"a": 1}'


def test_parse_verdict_validates():
    assert parse_verdict(verdict("coffee", 0.8)).taxonomy == T.COFFEE
    assert parse_verdict('{"taxonomy": "dining"}').confidence == 0.8
    for bad in ('{"taxonomy": "restaurants"}', '{"taxonomy": "dining", "confidence": 1.4}', "not json", "", "[]"):
        with pytest.raises(ValueError):
            parse_verdict(bad)


def test_parse_batch_skips_bad_entries():
    text = json.dumps(
        [
            {"index": 3, "taxonomy": "gas", "confidence": 0.9},
            {"index": 1, "taxonomy": "nope", "confidence": 0.9},
            {"index": 9, "taxonomy": "gas", "confidence": 0.9},
            {"index": 2, "taxonomy": "dining", "confidence": 0.7},
            {"index": 2, "taxonomy": "coffee", "confidence": 0.7},
        ]
    )
    out = parse_batch(text, size=3)
    assert sorted(out) == [2, 3]
    assert out[2].taxonomy == T.DINING
    with pytest.raises(ValueError):
        parse_batch('{"index": 1}', size=3)


# ------------------------------------------------------------------ single

def test_confident_rules_skip_ai(make_provider):
    provider = make_provider(verdict("dining"))
    res = _ai(provider).resolve("Starbucks")
    assert res.stage == Stage.RULE_CONFIDENT
    assert res.classification.taxonomy == T.COFFEE
    assert provider.calls == []


def test_ai_result_is_validated_and_cached(make_provider, clock):
    provider = make_provider(verdict("electronics", 0.85))
    ai = _ai(provider, clock)
    record = PlaceRecord(name="Mystery Vendor 1", provider_type_tags=("point_of_interest",), address="1 Main St")

    res = ai.resolve(record)
    assert res.stage == Stage.AI
    assert res.classification.taxonomy == T.ELECTRONICS
    assert res.classification.confidence == pytest.approx(0.85)
    assert res.classification.source == "ai"
    assert res.classification.category_code_candidates == CategoryCodeMap().codes_for(T.ELECTRONICS)
    assert "Address: 1 Main St" in provider.calls[0]["user"]
    assert provider.calls[0]["max_tokens"] == 100
    assert provider.calls[0]["timeout"] == 10.0

    again = ai.resolve(record)
    assert again.stage == Stage.CACHE_HIT
    assert again.classification == res.classification
    assert len(provider.calls) == 1

    clock.advance(24 * 3600 + 60)
    assert ai.resolve(record).stage == Stage.AI
    assert len(provider.calls) == 2


def test_unconfigured_ai_returns_rules():
    res = _ai(None).resolve("Acme Corp")
    assert res.stage == Stage.AI_UNAVAILABLE
    assert res.classification.taxonomy == T.SHOPPING
    assert res.classification.confidence == pytest.approx(0.3)


def test_throwing_provider_equals_unconfigured(make_provider):
    provider = make_provider(TimeoutError("slow"))
    for name in ("Acme Corp", "Joe's Café", "Mystery Vendor 3"):
        failing = _ai(provider).resolve(name)
        plain = _ai(None).resolve(name)
        assert failing.classification == plain.classification
        assert failing.stage in (Stage.AI_FAILED, Stage.RULE_CONFIDENT)


@pytest.mark.parametrize(
    "answer",
    ['{"taxonomy": "restaurants", "confidence": 0.9}', '{"taxonomy": "dining", "confidence": 7}', "sorry!", ""],
)
def test_invalid_answers_fall_back(make_provider, answer):
    ai = _ai(make_provider(answer))
    res = ai.resolve("Acme Corp")
    assert res.stage == Stage.AI_INVALID
    assert res.classification == _ai(None).classify("Acme Corp")
    assert len(ai.cache) == 0


def test_cancelled_before_call(make_provider):
    provider = make_provider(verdict("gas"))
    cancel = threading.Event()
    cancel.set()
    ai = _ai(provider)
    res = ai.resolve("Acme Corp", cancel=cancel)
    assert res.stage == Stage.CANCELLED
    assert res.classification == _ai(None).classify("Acme Corp")
    assert provider.calls == []
    assert len(ai.cache) == 0


def test_cancelled_during_call_is_not_cached():
    cancel = threading.Event()

    class CancellingProvider:
        def complete(self, system_prompt, user_prompt, *, max_tokens, timeout):
            cancel.set()
            return verdict("gas")

    ai = _ai(CancellingProvider())
    res = ai.resolve("Acme Corp", cancel=cancel)
    assert res.stage == Stage.CANCELLED
    assert res.classification.taxonomy == T.SHOPPING
    assert len(ai.cache) == 0


# ------------------------------------------------------------------ batch

def test_batch_partial_shuffled_answer(make_provider):
    answer = json.dumps(
        [
            {"index": 5, "taxonomy": "gas", "confidence": 0.9},
            {"index": 1, "taxonomy": "dining", "confidence": 0.8},
            {"index": 3, "taxonomy": "hotels", "confidence": 0.7},
        ]
    )
    provider = make_provider(answer)
    ai = _ai(provider)
    out = ai.resolve_batch(UNSURE)

    assert len(provider.calls) == 1
    assert '1. "Mystery Vendor 1"' in provider.calls[0]["user"]
    assert '5. "Mystery Vendor 5"' in provider.calls[0]["user"]
    assert provider.calls[0]["max_tokens"] == 500

    assert [r.classification.taxonomy for r in out] == [T.DINING, T.SHOPPING, T.HOTELS, T.SHOPPING, T.GAS]
    assert [r.stage for r in out] == [Stage.AI, Stage.AI_INVALID, Stage.AI, Stage.AI_INVALID, Stage.AI]
    rules = _ai(None)
    assert out[1].classification == rules.classify(UNSURE[1])
    assert out[3].classification == rules.classify(UNSURE[3])

    assert len(ai.cache) == 3
    assert ai.cache.get(make_cache_key(UNSURE[4])).taxonomy == T.GAS


def test_batch_mixes_confident_cached_and_ai(make_provider):
    provider = make_provider(json.dumps([{"index": 1, "taxonomy": "entertainment", "confidence": 0.9}]))
    ai = _ai(provider)
    ai.cache.put(make_cache_key("Mystery Vendor 2"), ai.classify("Starbucks"))

    out = ai.resolve_batch(["Starbucks", "Mystery Vendor 2", {"name": "Mystery Vendor 3"}])
    assert [r.stage for r in out] == [Stage.RULE_CONFIDENT, Stage.CACHE_HIT, Stage.AI]
    assert out[2].classification.taxonomy == T.ENTERTAINMENT
    assert '1. "Mystery Vendor 3"' in provider.calls[0]["user"]


def test_batch_chunks_and_concurrency(make_provider):
    answer = json.dumps([{"index": i, "taxonomy": "dining", "confidence": 0.8} for i in range(1, 3)])
    provider = make_provider(answer)
    ai = _ai(provider, batch_size=2, batch_workers=3)
    out = ai.classify_batch(UNSURE)
    assert len(provider.calls) == 3  # 2 + 2 + 1
    assert len(out) == 5
    assert all(c.taxonomy == T.DINING for c in out)


def test_batch_transport_failure_and_unconfigured_match(make_provider):
    failing = _ai(make_provider(ConnectionError("down"))).resolve_batch(UNSURE)
    plain = _ai(None).resolve_batch(UNSURE)
    assert [r.classification for r in failing] == [r.classification for r in plain]
    assert {r.stage for r in failing} == {Stage.AI_FAILED}
    assert {r.stage for r in plain} == {Stage.AI_UNAVAILABLE}


def test_batch_cancelled(make_provider):
    provider = make_provider("[]")
    cancel = threading.Event()
    cancel.set()
    out = _ai(provider).resolve_batch(UNSURE, cancel=cancel)
    assert {r.stage for r in out} == {Stage.CANCELLED}
    assert provider.calls == []


def test_batch_empty():
    assert _ai(None).classify_batch([]) == []


def test_deeply_nested_answer_is_invalid(make_provider):
    nested = "[" * 5000 + "]" * 5000
    with pytest.raises(ValueError):
        parse_verdict(nested)
    with pytest.raises(ValueError):
        parse_batch(nested, size=2)

    single = _ai(make_provider(nested)).resolve("Acme Corp")
    assert single.stage == Stage.AI_INVALID
    assert single.classification == _ai(None).classify("Acme Corp")

    out = _ai(make_provider(nested)).resolve_batch(UNSURE[:2])
    assert [r.stage for r in out] == [Stage.AI_INVALID, Stage.AI_INVALID]
    assert [r.classification for r in out] == _ai(None).classify_batch(UNSURE[:2])
