# rewardlens/service.py
"""
RewardLens — Engine facade (code → rules → cache → AI)

What this module provides
-------------------------
- ClassificationService: wires the registries, matcher and AI fallback from one
  EngineConfig and exposes:
    - resolve_record(record) -> (Classification, stage)
    - classify_record(record) -> dict   (single place record)
    - match_record(record) -> MerchantMatchResult
    - classify_batch(records) -> {"results": [...], "metrics": {...}}
- Prometheus request counter / latency histogram / coverage gauge.

Routing
-------
1) A category code that maps through the code table decides outright
   (``code_confidence``, source ``code``, the code itself listed first among
   the candidates). Codes whose category has no taxonomy counterpart
   (utilities, insurance, ...) fall through to step 2.
2) Otherwise the AI fallback classifier runs its staged pipeline
   (rules → cache → provider), which never raises.

Records are `PlaceRecord`s, dicts shaped like the place-search payload, or bare
names.
"""

from __future__ import annotations

import threading
import time
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
from prometheus_client import Counter, Gauge, Histogram

from .brands import BrandRegistry
from .cache import TTLCache
from .classifier import SOURCE_CODE, Classification, RuleBasedClassifier
from .codes import CategoryCodeMap, parse_code
from .config import EngineConfig
from .llm_fallback import AIFallbackClassifier, AIProvider, RecordLike, Stage
from .matcher import MerchantMatcher, MerchantMatchResult
from .preproc import PlaceRecord, coerce_record
from .taxonomy import category_to_taxonomy, has_taxonomy_counterpart


# ------------------------------ Metrics --------------------------------------

CLASSIFY_REQUESTS = Counter("rewardlens_classify_requests_total", "Total classification requests")
COVERAGE_RATIO = Gauge("rewardlens_coverage_ratio", "Share of a batch with confidence >= AI threshold")
CLASSIFY_LAT_MS = Histogram(
    "rewardlens_classify_latency_ms",
    "Classification latency in milliseconds",
    buckets=(1, 2, 5, 10, 20, 40, 80, 160, 320, 640, 1280, 5000),
)

STAGE_CODE = "code"

# Stages in which the AI provider was consulted (successfully or not).
ESCALATED = frozenset({Stage.AI.value, Stage.AI_FAILED.value, Stage.AI_INVALID.value})


class ClassificationService:
    """
    Runtime router over one shared set of read-only registries and one cache.

    Parameters
    ----------
    config : EngineConfig, optional
    provider : AIProvider, optional
        Injected AI capability; ``None`` keeps the engine rule-based.
    brands : BrandRegistry, optional
    cache : TTLCache, optional
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        provider: Optional[AIProvider] = None,
        brands: Optional[BrandRegistry] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.config = config or EngineConfig()
        self.codes = CategoryCodeMap()
        self.rules = RuleBasedClassifier(
            brands=brands,
            codes=self.codes,
            default_confidence=self.config.default_confidence,
            food_cue_floor=self.config.food_cue_floor,
        )
        self.matcher = MerchantMatcher(self.rules, self.codes, code_confidence=self.config.code_confidence)
        self.ai = AIFallbackClassifier(self.rules, cache=cache, provider=provider, config=self.config)

    # -------------------------- Routing core --------------------------

    def _from_code(self, record: PlaceRecord) -> Optional[Classification]:
        code = parse_code(record.category_code)
        category = self.codes.lookup(code)
        if category is None or not has_taxonomy_counterpart(category):
            return None
        taxonomy = category_to_taxonomy(category)
        candidates = (code,) + tuple(c for c in self.codes.codes_for(taxonomy) if c != code)
        brand = self.rules.brands.find_brand(record.name)
        return Classification(
            taxonomy=taxonomy,
            category_code_candidates=candidates,
            confidence=self.config.code_confidence,
            brand_id=brand.id if brand is not None else None,
            source=SOURCE_CODE,
        )

    def resolve_record(
        self, record: RecordLike, cancel: Optional[threading.Event] = None
    ) -> Tuple[Classification, str]:
        """Classification of one record plus the stage that produced it."""
        record = coerce_record(record)
        by_code = self._from_code(record)
        if by_code is not None:
            return by_code, STAGE_CODE
        resolution = self.ai.resolve(record, cancel)
        return resolution.classification, resolution.stage.value

    @staticmethod
    def _result(record: PlaceRecord, classification: Classification, stage: str, lat_ms: float) -> Dict:
        out = {"id": record.record_id, "name": record.name}
        out.update(classification.to_dict())
        out["stage"] = stage
        out["lat_ms"] = round(lat_ms, 2)
        return out

    def classify_record(self, record: RecordLike, cancel: Optional[threading.Event] = None) -> Dict:
        """
        Classify a single place record and return the result dict
        (``id``, ``name``, classification fields, ``stage``, ``lat_ms``).
        """
        t0 = time.perf_counter()
        CLASSIFY_REQUESTS.inc()
        record = coerce_record(record)
        classification, stage = self.resolve_record(record, cancel)
        lat_ms = (time.perf_counter() - t0) * 1000.0
        CLASSIFY_LAT_MS.observe(lat_ms)
        return self._result(record, classification, stage, lat_ms)

    def match_record(self, record: RecordLike) -> MerchantMatchResult:
        record = coerce_record(record)
        return self.matcher.match(record.name, record.category_code)

    # -------------------------- Batch helper --------------------------

    def classify_batch(self, records: Iterable[RecordLike], cancel: Optional[threading.Event] = None) -> Dict:
        """
        Classify a batch (grouped AI calls for the uncertain remainder) and
        compute batch metrics:

        - coverage: share of results with confidence >= the AI threshold.
        - fallback_rate: share of records escalated to the AI provider.

        Results are returned in input order.
        """
        t0 = time.perf_counter()
        items = [coerce_record(r) for r in records]
        CLASSIFY_REQUESTS.inc(len(items))

        decided: List[Optional[Tuple[Classification, str]]] = [None] * len(items)
        rest: List[int] = []
        for pos, record in enumerate(items):
            by_code = self._from_code(record)
            if by_code is not None:
                decided[pos] = (by_code, STAGE_CODE)
            else:
                rest.append(pos)

        resolutions = self.ai.resolve_batch([items[pos] for pos in rest], cancel)
        for pos, resolution in zip(rest, resolutions):
            decided[pos] = (resolution.classification, resolution.stage.value)

        per_item_ms = (time.perf_counter() - t0) * 1000.0 / max(1, len(items))
        results = []
        for record, (classification, stage) in zip(items, decided):
            CLASSIFY_LAT_MS.observe(per_item_ms)
            results.append(self._result(record, classification, stage, per_item_ms))

        confs = [r["confidence"] for r in results]
        coverage = float(np.mean([c >= self.config.ai_threshold for c in confs])) if confs else 0.0
        fallback_rate = float(np.mean([r["stage"] in ESCALATED for r in results])) if results else 0.0
        COVERAGE_RATIO.set(coverage)
        return {
            "results": results,
            "metrics": {"coverage": round(coverage, 4), "fallback_rate": round(fallback_rate, 4)},
        }
