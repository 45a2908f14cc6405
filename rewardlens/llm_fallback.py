# rewardlens/llm_fallback.py
"""
RewardLens — AI fallback (strict-JSON output, fail-open)

Purpose
-------
Escalate low-confidence rule-based classifications to an LLM provider. The
provider must answer with strictly constrained JSON so callers can validate it:

    single: {"taxonomy": "<one-of-taxonomies>", "confidence": 0.0..1.0, "reason": "..."}
    batch : [{"index": 1, "taxonomy": "<one-of-taxonomies>", "confidence": 0.0..1.0}, ...]

Stages (single request)
-----------------------
    rule-based ── confidence ≥ threshold ─────────────────→ rule_confident
        └─ cache lookup ── hit ───────────────────────────→ cache_hit
              └─ no provider ─────────────────────────────→ ai_unavailable
              └─ cancelled ───────────────────────────────→ cancelled
              └─ provider call ── raises / times out ─────→ ai_failed
                    └─ unparseable / fails validation ────→ ai_invalid
                    └─ valid → cache write ───────────────→ ai

Every stage except ``ai`` and ``cache_hit`` returns the rule-based result; the
caller never sees an exception from this path.

Batch
-----
Items are partitioned into resolved (confident or cached) and needing AI. The
latter are chunked (``batch_size``), each chunk is sent in one call with 1-based
indices, chunks run concurrently on a joblib thread pool, and answers are mapped
back by index. Items missing from an answer, or with an invalid entry, keep
their rule-based result. Output order always equals input order.

Public API
----------
- AIProvider (protocol), OpenAIProvider
- AIVerdict, AIBatchVerdict (pydantic models used for validation)
- Stage, Resolution
- AIFallbackClassifier.resolve / classify / resolve_batch / classify_batch
"""

from __future__ import annotations

import json
import logging
import threading
from enum import Enum
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Protocol, Sequence, Tuple, Union

from joblib import Parallel, delayed
from openai import OpenAI
from prometheus_client import Counter
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .cache import TTLCache, make_cache_key
from .classifier import SOURCE_AI, Classification, RuleBasedClassifier
from .config import EngineConfig
from .preproc import PlaceRecord, coerce_record
from .taxonomy import Taxonomy

logger = logging.getLogger(__name__)

AI_CALLS = Counter("rewardlens_ai_calls_total", "AI provider calls", ["mode"])
AI_FAILURES = Counter("rewardlens_ai_failures_total", "AI fallbacks to rules", ["reason"])


# ---------------------------------------------------------------------------
# Provider interface
# ---------------------------------------------------------------------------

class AIProvider(Protocol):
    """Anything able to turn a (system, user) prompt pair into response text."""

    def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int, timeout: float) -> str:
        ...


class OpenAIProvider:
    """
    Chat-completions provider backed by an injected ``openai.OpenAI`` client.

    Use `from_env` to build the client from ``OPENAI_API_KEY``; the engine
    itself never reads credentials.
    """

    def __init__(self, client, model: str = "gpt-4o-mini", temperature: float = 0.1):
        self.client = client
        self.model = model
        self.temperature = float(temperature)

    @classmethod
    def from_env(cls, model: str = "gpt-4o-mini", temperature: float = 0.1) -> "OpenAIProvider":
        return cls(OpenAI(), model=model, temperature=temperature)

    def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int, timeout: float) -> str:
        response = self.client.with_options(timeout=timeout).chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=max_tokens,
            temperature=self.temperature,
        )
        return (response.choices[0].message.content or "").strip()


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

SINGLE_SYSTEM_PROMPT = """You are an expert at categorizing businesses for credit card rewards optimization.

Classify businesses into EXACTLY ONE of these categories:
- dining: Restaurants, fast food, cafeterias, meal delivery
- coffee: Coffee shops, cafes, tea houses
- groceries: Supermarkets, grocery stores, food markets, bodegas
- gas: Gas stations, fuel stations, EV charging
- shopping: Retail stores, department stores, malls, online shopping
- pharmacy: Drugstores, pharmacies, medical supplies
- entertainment: Movies, theaters, attractions, events, sports
- travel: Airlines, car rentals, travel agencies
- electronics: Electronics stores, tech retailers, computer stores
- hotels: Hotels, motels, lodging, resorts
- home_improvement: Hardware stores, home goods, furniture

Respond with ONLY a JSON object: {"taxonomy": "category_name", "confidence": 0.0-1.0, "reason": "brief explanation"}"""

BATCH_SYSTEM_PROMPT = """You are an expert at categorizing businesses for credit card rewards.

Categories: """ + ", ".join(t.value for t in Taxonomy) + """

Respond with ONLY a JSON array of objects, one per business:
[{"index": 1, "taxonomy": "category", "confidence": 0.0-1.0}]"""


def build_single_prompt(record: PlaceRecord) -> str:
    lines = [f'Classify this business: "{record.name}"']
    if record.address:
        lines.append(f"Address: {record.address}")
    if record.provider_type_tags:
        lines.append(f"Place types: {', '.join(record.provider_type_tags[:5])}")
    if record.place_text:
        lines.append(f"Full name: {record.place_text}")
    return "\n".join(lines)


def build_batch_prompt(records: Sequence[PlaceRecord]) -> str:
    lines = []
    for i, record in enumerate(records, start=1):
        line = f'{i}. "{record.name}"'
        if record.address:
            line += f" at {record.address}"
        if record.provider_type_tags:
            line += f" (types: {', '.join(record.provider_type_tags[:3])})"
        lines.append(line)
    return "Classify these businesses:\n" + "\n".join(lines)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class AIVerdict(BaseModel):
    model_config = ConfigDict(extra="ignore")

    taxonomy: Taxonomy
    confidence: float = Field(0.8, ge=0.0, le=1.0)
    reason: str = ""


class AIBatchVerdict(AIVerdict):
    index: int = Field(..., ge=1)


def strip_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```), if any."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    return text.strip()


def _load_json(body: str):
    try:
        return json.loads(body)
    except RecursionError as e:
        raise ValueError("AI response nests too deeply") from e


def parse_verdict(text: str) -> AIVerdict:
    """
    Parse and validate a single-item answer.

    Raises
    ------
    ValueError
        Empty or malformed JSON, unknown taxonomy, or confidence outside [0, 1]
        (pydantic's ValidationError is a ValueError).
    """
    body = strip_fences(text)
    if not body:
        raise ValueError("empty AI response")
    return AIVerdict.model_validate(_load_json(body))


def parse_batch(text: str, size: int) -> Dict[int, AIBatchVerdict]:
    """
    Parse a batch answer into ``{index: verdict}`` (1-based).

    Entries are validated one by one; invalid entries, indices outside
    ``1..size`` and repeated indices (after the first valid one) are skipped.
    A body that is not a JSON array raises ValueError.
    """
    body = strip_fences(text)
    if not body:
        raise ValueError("empty AI response")
    data = _load_json(body)
    if not isinstance(data, list):
        raise ValueError("batch AI response is not a JSON array")

    verdicts: Dict[int, AIBatchVerdict] = {}
    for entry in data:
        try:
            verdict = AIBatchVerdict.model_validate(entry)
        except ValidationError:
            continue
        if verdict.index <= size and verdict.index not in verdicts:
            verdicts[verdict.index] = verdict
    return verdicts


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

class Stage(str, Enum):
    RULE_CONFIDENT = "rule_confident"
    CACHE_HIT = "cache_hit"
    AI_UNAVAILABLE = "ai_unavailable"
    CANCELLED = "cancelled"
    AI_FAILED = "ai_failed"
    AI_INVALID = "ai_invalid"
    AI = "ai"


class Resolution(NamedTuple):
    classification: Classification
    stage: Stage


RecordLike = Union[PlaceRecord, Mapping, str]


def _cancelled(cancel: Optional[threading.Event]) -> bool:
    return cancel is not None and cancel.is_set()


class AIFallbackClassifier:
    """
    Rule-based classifier with a confidence-gated, cached AI fallback.

    Parameters
    ----------
    rules : RuleBasedClassifier, optional
    cache : TTLCache, optional
        Shared between single and batch calls (and threads).
    provider : AIProvider, optional
        ``None`` means AI is unconfigured; results stay rule-based.
    config : EngineConfig, optional
    """

    def __init__(
        self,
        rules: Optional[RuleBasedClassifier] = None,
        cache: Optional[TTLCache] = None,
        provider: Optional[AIProvider] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig()
        self.rules = rules or RuleBasedClassifier(
            default_confidence=self.config.default_confidence,
            food_cue_floor=self.config.food_cue_floor,
        )
        self.cache = cache if cache is not None else TTLCache(
            max_entries=self.config.cache_max_entries,
            ttl_seconds=self.config.cache_ttl_seconds,
        )
        self.provider = provider

    # ------------------------------------------------------------------ helpers

    def _rule_result(self, record: PlaceRecord) -> Classification:
        return self.rules.classify(record.name, record.provider_type_tags, record.place_text)

    def _from_verdict(self, verdict: AIVerdict, rule: Classification) -> Classification:
        return Classification(
            taxonomy=verdict.taxonomy,
            category_code_candidates=self.rules.codes.codes_for(verdict.taxonomy),
            confidence=verdict.confidence,
            brand_id=rule.brand_id,
            source=SOURCE_AI,
        )

    def _fail(self, rule: Classification, stage: Stage, reason: str) -> Resolution:
        AI_FAILURES.labels(reason=reason).inc()
        return Resolution(rule, stage)

    # ------------------------------------------------------------------ single

    def resolve(self, record: RecordLike, cancel: Optional[threading.Event] = None) -> Resolution:
        """Classify one record and report the terminal stage."""
        record = coerce_record(record)
        rule = self._rule_result(record)
        if rule.confidence >= self.config.ai_threshold:
            return Resolution(rule, Stage.RULE_CONFIDENT)

        key = make_cache_key(record.name, record.provider_type_tags)
        cached = self.cache.get(key)
        if cached is not None:
            return Resolution(cached, Stage.CACHE_HIT)

        if self.provider is None:
            logger.debug("AI not configured, using rule-based classification for %r", record.name)
            return Resolution(rule, Stage.AI_UNAVAILABLE)
        if _cancelled(cancel):
            return self._fail(rule, Stage.CANCELLED, "cancelled")

        AI_CALLS.labels(mode="single").inc()
        try:
            text = self.provider.complete(
                SINGLE_SYSTEM_PROMPT,
                build_single_prompt(record),
                max_tokens=self.config.single_max_tokens,
                timeout=self.config.ai_timeout_seconds,
            )
        except Exception as e:
            logger.warning("AI classification failed for %r, using rule-based: %s", record.name, e)
            return self._fail(rule, Stage.AI_FAILED, "transport")

        try:
            verdict = parse_verdict(text)
        except ValueError as e:
            logger.warning("AI returned an invalid answer for %r: %s", record.name, e)
            return self._fail(rule, Stage.AI_INVALID, "invalid")

        if _cancelled(cancel):
            return self._fail(rule, Stage.CANCELLED, "cancelled")

        result = self._from_verdict(verdict, rule)
        self.cache.put(key, result)
        logger.debug(
            "AI classified %r as %s (%.2f): %s",
            record.name, result.taxonomy.value, result.confidence, verdict.reason,
        )
        return Resolution(result, Stage.AI)

    def classify(self, record: RecordLike, cancel: Optional[threading.Event] = None) -> Classification:
        return self.resolve(record, cancel).classification

    # ------------------------------------------------------------------ batch

    def _run_chunk(
        self,
        chunk: List[Tuple[PlaceRecord, Classification]],
        cancel: Optional[threading.Event],
    ) -> List[Resolution]:
        fallback = [Resolution(rule, Stage.AI_INVALID) for _, rule in chunk]
        if _cancelled(cancel):
            AI_FAILURES.labels(reason="cancelled").inc()
            return [Resolution(rule, Stage.CANCELLED) for _, rule in chunk]

        AI_CALLS.labels(mode="batch").inc()
        try:
            text = self.provider.complete(
                BATCH_SYSTEM_PROMPT,
                build_batch_prompt([record for record, _ in chunk]),
                max_tokens=self.config.batch_max_tokens,
                timeout=self.config.ai_timeout_seconds,
            )
        except Exception as e:
            logger.warning("Batch AI classification failed for %d items: %s", len(chunk), e)
            AI_FAILURES.labels(reason="transport").inc()
            return [Resolution(rule, Stage.AI_FAILED) for _, rule in chunk]

        try:
            verdicts = parse_batch(text, len(chunk))
        except ValueError as e:
            logger.warning("Batch AI answer unusable: %s", e)
            AI_FAILURES.labels(reason="invalid").inc()
            return fallback

        if _cancelled(cancel):
            AI_FAILURES.labels(reason="cancelled").inc()
            return [Resolution(rule, Stage.CANCELLED) for _, rule in chunk]

        out: List[Resolution] = []
        for i, (record, rule) in enumerate(chunk, start=1):
            verdict = verdicts.get(i)
            if verdict is None:
                out.append(fallback[i - 1])
                continue
            result = self._from_verdict(verdict, rule)
            self.cache.put(make_cache_key(record.name, record.provider_type_tags), result)
            out.append(Resolution(result, Stage.AI))
        missing = len(chunk) - len(verdicts)
        if missing:
            logger.debug("Batch AI answer left %d of %d items to rules", missing, len(chunk))
            AI_FAILURES.labels(reason="invalid").inc(missing)
        return out

    def resolve_batch(
        self, records: Iterable[RecordLike], cancel: Optional[threading.Event] = None
    ) -> List[Resolution]:
        """
        Classify many records; one grouped AI call per chunk of unresolved items.

        The returned list is aligned with ``records``.
        """
        items = [coerce_record(r) for r in records]
        resolutions: List[Optional[Resolution]] = [None] * len(items)
        pending: List[Tuple[int, PlaceRecord, Classification]] = []

        for pos, record in enumerate(items):
            rule = self._rule_result(record)
            if rule.confidence >= self.config.ai_threshold:
                resolutions[pos] = Resolution(rule, Stage.RULE_CONFIDENT)
                continue
            cached = self.cache.get(make_cache_key(record.name, record.provider_type_tags))
            if cached is not None:
                resolutions[pos] = Resolution(cached, Stage.CACHE_HIT)
                continue
            pending.append((pos, record, rule))

        if pending and self.provider is None:
            logger.debug("AI not configured, %d batch items stay rule-based", len(pending))
            for pos, _, rule in pending:
                resolutions[pos] = Resolution(rule, Stage.AI_UNAVAILABLE)
            pending = []

        size = self.config.batch_size
        chunks = [pending[i:i + size] for i in range(0, len(pending), size)]
        if chunks:
            n_jobs = max(1, min(self.config.batch_workers, len(chunks)))
            answers = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(self._run_chunk)([(rec, rule) for _, rec, rule in chunk], cancel)
                for chunk in chunks
            )
            for chunk, chunk_out in zip(chunks, answers):
                for (pos, _, _), resolution in zip(chunk, chunk_out):
                    resolutions[pos] = resolution

        return resolutions

    def classify_batch(
        self, records: Iterable[RecordLike], cancel: Optional[threading.Event] = None
    ) -> List[Classification]:
        return [r.classification for r in self.resolve_batch(records, cancel)]
