"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from intelfilter.tables import ScoringTables, load_tables

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]
OUTPUT_DIR: Path = Path(os.getenv("INTELFILTER_OUTPUT_DIR", str(PROJECT_ROOT / "out")))

# ── Scoring tables ─────────────────────────────────────────────────────────
TABLES_PATH: str = os.getenv("INTELFILTER_TABLES", "")

# ── Logging ────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("INTELFILTER_LOG_LEVEL", "INFO").upper()


def scoring_tables(path: Path | str | None = None) -> ScoringTables:
    """Resolve the tables for this process.

    An explicit *path* wins over ``INTELFILTER_TABLES``; with neither set the
    built-in tables are used.
    """
    return load_tables(path or TABLES_PATH or None)
