# tests/test_cli.py
from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from rewardlens.cli import app

runner = CliRunner()


def test_classify_command():
    result = runner.invoke(app, ["classify", "Starbucks Reserve Roastery"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["taxonomy"] == "coffee"


def test_classify_with_code_and_tags():
    result = runner.invoke(app, ["classify", "Unbranded Diner", "--code", "5812", "-t", "store"])
    assert result.exit_code == 0, result.output
    out = json.loads(result.output)
    assert out["source"] == "code"


def test_match_command_prints_notes():
    result = runner.invoke(app, ["match", "Courtyard by Marriott Midtown", "--code", "7011"])
    assert result.exit_code == 0, result.output
    out = json.loads(result.output)
    assert out["taxonomy"] == "marriott"
    assert "Hotel brand marriott detected from name" in out["notes"]


def test_best_match_command():
    result = runner.invoke(app, ["best-match", "JW Marriott Downtown", "Hilton", "Marriott"])
    assert result.exit_code == 0, result.output
    assert "BEST" in result.output


def test_batch_command(tmp_path: Path):
    src = tmp_path / "places.csv"
    pd.DataFrame(
        [
            {"id": "1", "name": "Shell", "types": "gas_station|point_of_interest", "category_code": ""},
            {"id": "2", "name": "Unbranded Diner", "types": "", "category_code": "5812"},
        ]
    ).to_csv(src, index=False)
    dst = tmp_path / "out.csv"

    result = runner.invoke(app, ["batch", str(src), "--out", str(dst)])
    assert result.exit_code == 0, result.output
    assert "coverage" in result.output

    df = pd.read_csv(dst, dtype=str)
    assert df["taxonomy"].tolist() == ["gas", "dining"]
    assert df["stage"].tolist() == ["rule_confident", "code"]


def test_batch_missing_file(tmp_path: Path):
    result = runner.invoke(app, ["batch", str(tmp_path / "nope.csv")])
    assert result.exit_code == 1
