# tests/conftest.py
from __future__ import annotations

import json
import threading
from typing import List, Optional

import pytest


class FakeProvider:
    """
    Scripted AI provider.

    ``responses`` are returned in order (the last one repeats); an Exception
    instance in the script is raised instead. Calls are recorded.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[dict] = []
        self._lock = threading.Lock()

    def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int, timeout: float) -> str:
        with self._lock:
            self.calls.append(
                {"system": system_prompt, "user": user_prompt, "max_tokens": max_tokens, "timeout": timeout}
            )
            idx = min(len(self.calls), len(self.responses)) - 1
            out = self.responses[idx] if self.responses else ""
        if isinstance(out, Exception):
            raise out
        return out


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def verdict(taxonomy: str, confidence: float = 0.9, reason: str = "test") -> str:
    return json.dumps({"taxonomy": taxonomy, "confidence": confidence, "reason": reason})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_provider():
    def _make(*responses) -> FakeProvider:
        return FakeProvider(*responses)
    return _make
