# tests/test_config.py
from __future__ import annotations

from pathlib import Path

import pytest

from rewardlens.config import EngineConfig


def test_defaults():
    cfg = EngineConfig()
    assert cfg.ai_threshold == 0.7
    assert cfg.cache_max_entries == 500
    assert cfg.cache_ttl_seconds == 86400
    assert cfg.batch_size == 20
    assert cfg.ai_model == "gpt-4o-mini"


def test_from_mapping_rejects_unknown_and_out_of_range():
    with pytest.raises(ValueError):
        EngineConfig.from_mapping({"ai_treshold": 0.5})
    with pytest.raises(ValueError):
        EngineConfig.from_mapping({"ai_threshold": 1.5})
    with pytest.raises(ValueError):
        EngineConfig.from_mapping({"batch_size": 0})
    with pytest.raises(ValueError):
        EngineConfig.from_mapping({"cache_ttl_seconds": -1})


def test_from_yaml(tmp_path: Path):
    path = tmp_path / "engine.yaml"
    path.write_text("ai_threshold: 0.75\ncache_max_entries: 1000\n", encoding="utf-8")
    cfg = EngineConfig.from_yaml(path)
    assert cfg.ai_threshold == 0.75
    assert cfg.cache_max_entries == 1000
    assert cfg.to_dict()["batch_size"] == 20


def test_from_yaml_empty_and_invalid(tmp_path: Path):
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert EngineConfig.from_yaml(empty) == EngineConfig()

    listy = tmp_path / "list.yaml"
    listy.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        EngineConfig.from_yaml(listy)
