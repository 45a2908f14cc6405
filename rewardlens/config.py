# rewardlens/config.py
"""
Engine configuration.

All tunable thresholds of the engine in one immutable record. Components take
the values they need explicitly; nothing here reads the environment.

    ai_threshold         rule-based results at or above this skip the AI path
    default_confidence   confidence of the generic default taxonomy
    food_cue_floor       minimum confidence of a food-cue override
    code_confidence      confidence of a category-code decision
    cache_ttl_seconds    AI cache entry lifetime
    cache_max_entries    AI cache capacity
    batch_size           items per batch AI call
    batch_workers        concurrent batch AI calls
    ai_timeout_seconds   per-call AI timeout
    ai_model / ai_temperature / single_max_tokens / batch_max_tokens
                         provider request parameters

YAML files hold a flat mapping of the same keys::

    ai_threshold: 0.75
    cache_max_entries: 1000
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml


@dataclass(frozen=True)
class EngineConfig:
    ai_threshold: float = 0.7
    default_confidence: float = 0.3
    food_cue_floor: float = 0.6
    code_confidence: float = 0.95
    cache_ttl_seconds: float = 24 * 60 * 60
    cache_max_entries: int = 500
    batch_size: int = 20
    batch_workers: int = 4
    ai_timeout_seconds: float = 10.0
    ai_model: str = "gpt-4o-mini"
    ai_temperature: float = 0.1
    single_max_tokens: int = 100
    batch_max_tokens: int = 500

    def __post_init__(self):
        for name in ("ai_threshold", "default_confidence", "food_cue_floor", "code_confidence"):
            value = getattr(self, name)
            if not 0.0 <= float(value) <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value!r}")
        for name in ("cache_max_entries", "batch_size", "batch_workers",
                     "single_max_tokens", "batch_max_tokens"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        for name in ("cache_ttl_seconds", "ai_timeout_seconds"):
            value = getattr(self, name)
            if float(value) <= 0:
                raise ValueError(f"{name} must be > 0, got {value!r}")
        if not 0.0 <= float(self.ai_temperature) <= 2.0:
            raise ValueError(f"ai_temperature must be in [0, 2], got {self.ai_temperature!r}")
        if not isinstance(self.ai_model, str) or not self.ai_model.strip():
            raise ValueError("ai_model must be a non-empty string")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """Build a config from a flat mapping; unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(map(str, unknown))}")
        return cls(**dict(data))

    @classmethod
    def from_yaml(cls, path: Path) -> "EngineConfig":
        path = Path(path)
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Config file must hold a mapping: {path}")
        return cls.from_mapping(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
