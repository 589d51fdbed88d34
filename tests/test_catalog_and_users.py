try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
import logging
import random

from app.clients.gemini import _collect_candidates, _parse_json_response
from app.core.logging import trace_logger
from app.models.user import CATALOG_PARTITION_KEY, StockRecord
from app.services import StockCatalogService, UserService
from scripts import seed_catalog


def test_get_or_create_is_idempotent(sqlite_store):
    users = UserService(sqlite_store)

    first = users.get_or_create("u1")
    second = users.get_or_create("u1")

    assert first.usage_count == second.usage_count == 0
    assert first.created_at == second.created_at
    assert second.is_anonymous is True
    assert second.is_subscribed is False


def test_linking_account_merges_profile(sqlite_store):
    users = UserService(sqlite_store)
    users.get_or_create("u2")

    linked = users.get_or_create(
        "u2", is_anonymous=False, display_name="Dana", email="dana@example.com"
    )
    # An anonymous re-sync does not re-anonymize the record.
    again = users.get_or_create("u2")

    assert linked.is_anonymous is False
    assert linked.display_name == "Dana"
    assert again.is_anonymous is False
    assert again.email == "dana@example.com"


def test_find_by_payment_customer_id(sqlite_store):
    users = UserService(sqlite_store)
    users.get_or_create("u3")
    users.set_payment_customer_id("u3", "cus_u3")

    assert users.find_by_payment_customer_id("cus_u3").id == "u3"
    assert users.find_by_payment_customer_id("cus_missing") is None


def test_updates_on_missing_user_return_none(sqlite_store):
    assert UserService(sqlite_store).set_subscription_status("ghost", True) is None


def test_catalog_skips_invalid_records(sqlite_store, caplog):
    catalog = StockCatalogService(sqlite_store)
    catalog.upsert([StockRecord(id="amd", company_name="AMD", data_bundle_path="gs://b/amd.json")])
    sqlite_store.put_item({"pk": CATALOG_PARTITION_KEY, "sk": "stock#BAD", "id": "BAD"})

    with caplog.at_level(logging.ERROR):
        stocks = catalog.list_stocks()

    assert [stock.id for stock in stocks] == ["AMD"]
    assert "stock#BAD" in caplog.text


def test_catalog_sample_is_distinct_and_bounded(sqlite_store):
    catalog = StockCatalogService(sqlite_store, rng=random.Random(3))
    catalog.upsert(
        StockRecord(id=f"T{index}", company_name=f"Company {index}", data_bundle_path=f"gs://b/{index}")
        for index in range(12)
    )

    sample = catalog.sample(10)

    assert len(sample) == 10
    assert len({stock.id for stock in sample}) == 10
    assert len(catalog.sample(50)) == 12


def test_seed_catalog_script(tmp_path):
    source = tmp_path / "stocks.json"
    source.write_text(
        json.dumps(
            [
                {"id": "aapl", "company_name": "Apple Inc.", "dataBundlePath": "gs://b/aapl.json"},
                {"id": "msft", "company_name": "Microsoft", "dataBundlePath": "gs://b/msft.json"},
            ]
        ),
        encoding="utf-8",
    )
    db_path = tmp_path / "seeded.db"

    assert seed_catalog.main([str(source), "--db-path", str(db_path)]) == 0

    from app.clients import SQLiteStore

    stocks = StockCatalogService(SQLiteStore(str(db_path))).list_stocks()
    assert [stock.id for stock in stocks] == ["AAPL", "MSFT"]


def test_seed_catalog_rejects_bad_input(tmp_path):
    source = tmp_path / "stocks.json"
    source.write_text(json.dumps({"id": "aapl"}), encoding="utf-8")

    assert seed_catalog.main([str(source), "--db-path", str(tmp_path / "x.db")]) == 2


def test_seed_catalog_uses_configured_store_without_gemini_key(tmp_path, monkeypatch):
    source = tmp_path / "stocks.json"
    source.write_text(
        json.dumps(
            [{"id": "nvda", "company_name": "NVIDIA", "dataBundlePath": "gs://b/nvda.json"}]
        ),
        encoding="utf-8",
    )
    db_path = tmp_path / "configured.db"
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("STORAGE_BACKEND", raising=False)
    monkeypatch.setenv("PROFITSCOUT_DB_PATH", str(db_path))

    assert seed_catalog.main([str(source)]) == 0

    from app.clients import SQLiteStore

    stocks = StockCatalogService(SQLiteStore(str(db_path))).list_stocks()
    assert [stock.id for stock in stocks] == ["NVDA"]


def test_parse_json_response_handles_fences_and_garbage():
    assert _parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
    assert _parse_json_response("no json here") == {"raw": "no json here"}
    assert _parse_json_response("   ") == {}


def test_collect_candidates_prefers_configured_model():
    assert _collect_candidates(" custom-model ", ("gemini-1.5-pro", "custom-model")) == [
        "custom-model",
        "gemini-1.5-pro",
    ]


def test_trace_logger_prefixes_messages(caplog):
    log = trace_logger(logging.getLogger("tests.trace"), "abc123")

    with caplog.at_level(logging.INFO, logger="tests.trace"):
        log.info("routing %s", "SingleStock")

    assert "[trace=abc123] routing SingleStock" in caplog.text
