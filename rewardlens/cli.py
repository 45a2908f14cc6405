# rewardlens/cli.py
"""
Developer CLI for RewardLens (Typer + Rich).

    rewardlens classify "Joe's Café" -t cafe -t food
    rewardlens match "Courtyard by Marriott Midtown" --code 3531
    rewardlens best-match "JW Marriott Downtown" Hilton Marriott Hyatt
    rewardlens batch places.csv --out classified.csv

`batch` reads a CSV with a required ``name`` column and optional ``id``,
``types`` (``|``-separated provider tags), ``place_text``, ``category_code``
and ``address`` columns.

Add ``--ai`` to enable the OpenAI fallback (reads ``OPENAI_API_KEY``) and
``--config engine.yaml`` to override engine thresholds.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer
from openai import OpenAIError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import EngineConfig
from .llm_fallback import OpenAIProvider
from .preproc import PlaceRecord
from .service import ClassificationService
from .similarity import find_best_match, rank_candidates

console = Console()
app = typer.Typer(no_args_is_help=True, help="Merchant reward-category classification tools.")


@app.callback()
def _setup(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging.")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _build_service(config_path: Optional[Path], use_ai: bool) -> ClassificationService:
    config = EngineConfig.from_yaml(config_path) if config_path else EngineConfig()
    provider = None
    if use_ai:
        try:
            provider = OpenAIProvider.from_env(model=config.ai_model, temperature=config.ai_temperature)
        except OpenAIError as e:
            typer.secho(f"Cannot configure the AI provider: {e}", fg=typer.colors.RED)
            raise typer.Exit(1)
    return ClassificationService(config=config, provider=provider)


def _cell(value):
    return None if pd.isna(value) else value


@app.command()
def classify(
    name: str,
    tag: List[str] = typer.Option(None, "--tag", "-t", help="Provider type tag (repeatable)."),
    place_text: Optional[str] = typer.Option(None, "--place-text", help="Full place name/description."),
    code: Optional[str] = typer.Option(None, "--code", help="Merchant category code."),
    address: Optional[str] = typer.Option(None, "--address"),
    ai: bool = typer.Option(False, "--ai", help="Enable the OpenAI fallback."),
    config: Optional[Path] = typer.Option(None, "--config", exists=True, dir_okay=False),
):
    """Classify one merchant into the reward taxonomy."""
    svc = _build_service(config, ai)
    record = PlaceRecord(
        name=name,
        provider_type_tags=tuple(tag or ()),
        place_text=place_text,
        category_code=code,
        address=address,
    )
    console.print_json(data=svc.classify_record(record))


@app.command()
def match(
    name: str,
    code: Optional[str] = typer.Option(None, "--code", help="Merchant category code."),
):
    """Match one merchant into the brand-aware reward categories, with notes."""
    svc = ClassificationService()
    result = svc.match_record({"name": name, "category_code": code})
    console.print_json(data=result.to_dict())


@app.command("best-match")
def best_match(
    target: str,
    candidates: List[str],
    threshold: float = typer.Option(0.6, "--threshold"),
    k: int = typer.Option(5, "--k", help="Candidates to show."),
):
    """Pick the candidate name closest to TARGET."""
    table = Table(title=f'Candidates for "{target}"')
    table.add_column("#", justify="right")
    table.add_column("candidate")
    table.add_column("score", justify="right")
    for row in rank_candidates(target, candidates, k=k):
        table.add_row(str(row.index), row.match, f"{row.score:.3f}")
    console.print(table)

    best = find_best_match(target, candidates, threshold=threshold)
    if best.match is not None:
        console.print(f"[green]BEST ≥ {threshold}[/] → {best.match} ({best.score:.3f})")
    else:
        console.print(f"[yellow]No candidate ≥ {threshold}[/] (best score {best.score:.3f})")


@app.command()
def batch(
    csv_path: Path = typer.Argument(..., help="CSV of places (name, id, types, place_text, category_code, address)."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write results to this CSV."),
    ai: bool = typer.Option(False, "--ai", help="Enable the OpenAI fallback."),
    config: Optional[Path] = typer.Option(None, "--config", exists=True, dir_okay=False),
):
    """Classify a CSV of places and print batch metrics."""
    if not csv_path.exists():
        typer.secho(f"Places file not found: {csv_path}", fg=typer.colors.RED)
        raise typer.Exit(1)
    df = pd.read_csv(csv_path, dtype=str)
    if "name" not in df.columns:
        typer.secho("CSV missing column: name", fg=typer.colors.RED)
        raise typer.Exit(1)

    records = []
    for row in df.to_dict(orient="records"):
        types = _cell(row.get("types"))
        records.append(
            PlaceRecord(
                name=_cell(row.get("name")) or "",
                provider_type_tags=tuple(t.strip() for t in types.split("|") if t.strip()) if types else (),
                place_text=_cell(row.get("place_text")),
                category_code=_cell(row.get("category_code")),
                address=_cell(row.get("address")),
                record_id=_cell(row.get("id")),
            )
        )

    svc = _build_service(config, ai)
    report = svc.classify_batch(records)

    table = Table(title=f"{csv_path.name}: {len(records)} places")
    for col in ("id", "name", "taxonomy", "confidence", "source", "stage"):
        table.add_column(col, justify="right" if col == "confidence" else "left")
    for r in report["results"]:
        table.add_row(
            str(r["id"] or ""), r["name"], r["taxonomy"], f"{r['confidence']:.2f}", r["source"], r["stage"]
        )
    console.print(table)

    metrics = report["metrics"]
    console.print(
        f"coverage: [bold]{metrics['coverage']:.3f}[/]  fallback_rate: [bold]{metrics['fallback_rate']:.3f}[/]"
    )

    if out is not None:
        frame = pd.DataFrame(report["results"])
        frame["category_code_candidates"] = frame["category_code_candidates"].map(
            lambda codes: "|".join(str(c) for c in codes)
        )
        frame.to_csv(out, index=False)
        console.log(f"[green]Wrote[/] → {out}")


def main():
    app()


if __name__ == "__main__":
    main()
