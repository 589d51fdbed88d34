#!/usr/bin/env python
"""Load stock catalog entries into the configured document store.

The input file is a JSON array of objects with ``id`` (ticker),
``company_name`` and ``dataBundlePath`` (``gs://`` or ``https://`` URI)::

    python -m scripts.seed_catalog stocks.json
    python -m scripts.seed_catalog stocks.json --db-path /tmp/profitscout.db

Without ``--db-path`` the store comes from ``STORAGE_BACKEND``,
``PROFITSCOUT_DB_PATH`` and the DynamoDB variables. Gemini and Stripe keys
are not required.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from app.clients import DynamoDBClient, SQLiteStore
from app.core.config import DocumentStoreSettings
from app.core.logging import configure_logging
from app.models.user import StockRecord
from app.services.catalog import StockCatalogService

logger = logging.getLogger("scripts.seed_catalog")


def load_stocks(path: Path) -> list[StockRecord]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON array of stock entries.")
    return [StockRecord.model_validate(entry) for entry in raw]


def _build_catalog(db_path: str | None) -> StockCatalogService:
    if db_path:
        return StockCatalogService(SQLiteStore(db_path))
    # Only the storage settings are read; no model or payment keys are needed.
    settings = DocumentStoreSettings()
    if settings.storage_backend == "dynamodb":
        return StockCatalogService(DynamoDBClient(settings.aws))
    return StockCatalogService(SQLiteStore(settings.db_path))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the stock catalog.")
    parser.add_argument("source", type=Path, help="JSON file with catalog entries.")
    parser.add_argument(
        "--db-path",
        default=None,
        help="Write to this SQLite file instead of the configured store.",
    )
    args = parser.parse_args(argv)
    configure_logging("INFO")

    try:
        stocks = load_stocks(args.source)
    except (OSError, ValueError, ValidationError) as exc:
        print(f"Could not read catalog entries: {exc}", file=sys.stderr)
        return 2

    count = _build_catalog(args.db_path).upsert(stocks)
    logger.info("Seeded %d stocks from %s", count, args.source)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
