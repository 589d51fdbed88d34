"""Stock catalog backed by the document store."""

from __future__ import annotations

import logging
import random
from typing import Iterable

from pydantic import ValidationError

from app.models.user import CATALOG_PARTITION_KEY, StockRecord, stock_sort_key
from app.services.users import DocumentStore

logger = logging.getLogger(__name__)


class StockCatalogService:
    """List, seed, and sample tradable issuers."""

    def __init__(self, store: DocumentStore, rng: random.Random | None = None) -> None:
        self._store = store
        self._rng = rng or random.Random()

    def list_stocks(self) -> list[StockRecord]:
        stocks: list[StockRecord] = []
        items = self._store.list_items_with_prefix(
            partition_key=CATALOG_PARTITION_KEY, sort_key_prefix="stock#"
        )
        for item in items:
            data = {key: value for key, value in item.items() if key not in ("pk", "sk")}
            try:
                stocks.append(StockRecord.model_validate(data))
            except ValidationError as exc:
                logger.error("Invalid stock record %s: %s", item.get("sk"), exc)
        return stocks

    def upsert(self, stocks: Iterable[StockRecord]) -> int:
        count = 0
        for stock in stocks:
            item = stock.model_dump(mode="json", by_alias=False)
            item["id"] = stock.id.upper()
            item["pk"] = CATALOG_PARTITION_KEY
            item["sk"] = stock_sort_key(stock.id)
            self._store.put_item(item)
            count += 1
        return count

    def sample(self, count: int) -> list[StockRecord]:
        """Return up to ``count`` distinct stocks in random order."""
        stocks = self.list_stocks()
        self._rng.shuffle(stocks)
        return stocks[:count]


__all__ = ["StockCatalogService"]
