from datetime import datetime, timedelta

from stockroom import cli, seed
from stockroom.models import RequestDeduplication, StockAdjustment, StockItem


def test_seed_warehouse_creates_catalog_with_sequential_skus(db):
    created, skipped = seed.seed_warehouse(db)

    assert created == len(seed.TOOL_CATALOG)
    assert skipped == 0
    first = db.query(StockItem).filter(StockItem.sku == "HERR-0001").one()
    assert first.name == seed.TOOL_CATALOG[0][0]
    assert first.quantity_on_hand == seed.TOOL_CATALOG[0][1]
    assert db.query(StockAdjustment).filter(StockAdjustment.reason == "initial").count() == len(seed.TOOL_CATALOG)


def test_seed_warehouse_skips_existing_items(db):
    db.add(StockItem(sku="LEGACY-1", name=seed.TOOL_CATALOG[1][0], quantity_on_hand=0, tags=[]))
    db.commit()

    created, skipped = seed.seed_warehouse(db)
    created_again, skipped_again = seed.seed_warehouse(db)

    assert (created, skipped) == (len(seed.TOOL_CATALOG) - 1, 1)
    assert (created_again, skipped_again) == (0, len(seed.TOOL_CATALOG))
    assert db.query(StockItem).filter(StockItem.sku == "HERR-0002").first() is None


def test_purge_command_reports_deleted_count(session_factory, monkeypatch, capsys):
    with session_factory() as db:
        db.add(
            RequestDeduplication(
                request_hash="c" * 64,
                endpoint="/api/reports",
                method="POST",
                status="completed",
                expires_at=datetime.utcnow() - timedelta(hours=1),
            )
        )
        db.commit()
    monkeypatch.setattr(cli, "SessionLocal", session_factory)

    cli.main(["purge-dedup"])

    assert "Purged 1 expired deduplication records" in capsys.readouterr().out
    with session_factory() as db:
        assert db.query(RequestDeduplication).count() == 0


def test_seed_command_uses_run_seed(monkeypatch, capsys):
    monkeypatch.setattr(cli, "run_seed", lambda: (3, 1))

    cli.main(["seed-warehouse"])

    assert "created=3, skipped=1" in capsys.readouterr().out
