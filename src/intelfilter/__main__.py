"""CLI entry-point: ``python -m intelfilter run`` / ``python -m intelfilter score``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from intelfilter import config
from intelfilter.combiner import MultiFactorScorer
from intelfilter.ingest import ingest
from intelfilter.models import parse_timestamp
from intelfilter.pipeline import QualityFilterPipeline
from intelfilter.tables import ConfigError

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_batch(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array, a ``{"documents": [...]}`` object, or JSON Lines."""
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return [json.loads(line) for line in text.splitlines() if line.strip()]
    if isinstance(data, dict):
        data = data.get("documents", [data])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of documents")
    return data


def _reference_time(value: str | None) -> datetime:
    if not value:
        return datetime.now(UTC)
    parsed = parse_timestamp(value)
    if parsed is None:
        raise SystemExit(f"--now: cannot parse {value!r}")
    return parsed


def _run(args: argparse.Namespace) -> None:
    now = _reference_time(args.now)
    pipeline = QualityFilterPipeline(tables=config.scoring_tables(args.tables))
    result = pipeline.run(load_batch(args.input), now=now)

    output = args.output or config.OUTPUT_DIR / f"signals-{now.strftime('%Y%m%d-%H%M%S')}.json"
    output.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "signals": [doc.model_dump(mode="json") for doc in result.signals],
        "rejected": [doc.model_dump(mode="json") for doc in result.rejected],
        "report": result.report.model_dump(mode="json"),
    }
    output.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    for stage in result.report.stages:
        logger.info("  %-24s %4d → %4d", stage.stage.value, stage.input_count, stage.passed_count)
    for line in result.report.recommendations:
        logger.info("Recommendation: %s", line)
    logger.info("Wrote %d signals to %s", result.report.output_count, output)


def _score(args: argparse.Namespace) -> None:
    now = _reference_time(args.now)
    scorer = MultiFactorScorer(config.scoring_tables(args.tables))
    docs = ingest(load_batch(args.input))
    for doc in docs:
        breakdown = scorer.score(doc, [d for d in docs if d.id != doc.id], now)
        print(
            f"{breakdown.overall_score:6.1f}  conf={breakdown.confidence:5.1f}  "
            f"{breakdown.priority.value:<8}  {doc.id}  {doc.title[:80]}"
        )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="intelfilter",
        description="Score and quality-filter annotated intelligence documents.",
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        help="Logging level (default: $INTELFILTER_LOG_LEVEL or INFO).",
    )
    sub = parser.add_subparsers(dest="command")

    # ── run ────────────────────────────────────────────────────────────
    run_parser = sub.add_parser("run", help="Run the quality filter over a batch.")
    run_parser.add_argument("--input", type=Path, required=True, help="Batch file (JSON or JSON Lines).")
    run_parser.add_argument("--output", type=Path, help="Where to write results (default: output dir).")

    # ── score ──────────────────────────────────────────────────────────
    score_parser = sub.add_parser("score", help="Print multi-factor scores without filtering.")
    score_parser.add_argument("--input", type=Path, required=True, help="Batch file (JSON or JSON Lines).")

    for p in (run_parser, score_parser):
        p.add_argument("--tables", type=Path, help="YAML file overriding the built-in scoring tables.")
        p.add_argument("--now", help="Reference time (ISO-8601) for age calculations.")

    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    try:
        if args.command == "run":
            _run(args)
        elif args.command == "score":
            _score(args)
        else:
            parser.print_help()
            sys.exit(1)
    except ConfigError as exc:
        logger.error("%s", exc)
        sys.exit(2)


if __name__ == "__main__":
    main()
