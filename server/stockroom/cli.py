import argparse

from .config import settings
from .db import SessionLocal
from .deduplication.service import purge_expired
from .logging_config import configure_logging
from .seed import run_seed


def _purge_dedup(args: argparse.Namespace) -> None:
    with SessionLocal() as db:
        deleted = purge_expired(db)
    print(f"Purged {deleted} expired deduplication records")


def _seed_warehouse(args: argparse.Namespace) -> None:
    created, skipped = run_seed()
    print(f"Warehouse seed complete: created={created}, skipped={skipped}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stockroom", description="Stockroom maintenance commands.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    purge = subparsers.add_parser("purge-dedup", help="Delete expired request deduplication records.")
    purge.set_defaults(handler=_purge_dedup)

    seed = subparsers.add_parser("seed-warehouse", help="Load the tool catalog into the stock ledger.")
    seed.set_defaults(handler=_seed_warehouse)
    return parser


def main(argv: list[str] | None = None) -> None:
    configure_logging(settings.log_level)
    args = build_parser().parse_args(argv)
    args.handler(args)


if __name__ == "__main__":
    main()
