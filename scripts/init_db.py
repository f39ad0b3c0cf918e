#!/usr/bin/env python3
"""
Create the stock ledger schema and the default warehouse.

Loads settings (YAML file plus environment overrides), creates any missing
tables and makes sure the default warehouse exists.  Safe to run on every
deploy: both steps are idempotent.  ``--reset`` drops all tables first.

Usage:
  python3 scripts/init_db.py [--config PATH] [--db-url URL] [--reset]
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create ledger tables and the default warehouse")
    p.add_argument(
        "--config",
        default=None,
        help="YAML settings file (default: $STOCK_LEDGER_CONFIG, else built-in defaults)",
    )
    p.add_argument(
        "--db-url",
        default=None,
        help="Database URL; overrides the settings file and environment",
    )
    p.add_argument(
        "--reset",
        action="store_true",
        help="Drop all ledger tables before creating them",
    )
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from dataclasses import replace

    from stock_ledger.config import load_settings
    from stock_ledger.db.engine import (
        create_tables,
        drop_tables,
        get_session_factory,
        init_engine,
    )
    from stock_ledger.logging_config import configure_logging, get_logger
    from stock_ledger.services.inventory_commands import InventoryCommands

    settings = load_settings(args.config)
    if args.db_url:
        settings = replace(settings, database_url=args.db_url)

    configure_logging(level=settings.log_level)
    logger = get_logger("scripts.init_db")

    init_engine(settings)
    if args.reset:
        drop_tables()
        logger.warning("tables_dropped")
    create_tables()

    commands = InventoryCommands(get_session_factory(), settings)
    default = commands.ensure_default_warehouse()
    logger.info(
        "ledger_initialized",
        extra={"default_warehouse_id": default.id, "warehouse_name": default.name},
    )
    print(f"  Ledger ready. Default warehouse {default.name!r} has id {default.id}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
