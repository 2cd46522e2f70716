#!/usr/bin/env python3
"""
Example: rehearse a V1 to V2 migration against in-memory stores

Runs the full orchestrator without touching either Supabase project. Useful
for checking the transforms and the statistics a real run would report.

Usage:
    # Built-in sample tenant
    python run_rehearsal.py

    # Tables exported from V1, one JSON file per table
    python run_rehearsal.py --tables-dir ./v1_export

    # Re-run to see the idempotency of the user phase
    python run_rehearsal.py --runs 2
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from tenant_migrator.cli import print_summary
from tenant_migrator.models.migration import ConflictPolicy, MigrationConfig
from tenant_migrator.orchestrator import MigrationOrchestrator
from tenant_migrator.stores.memory import InMemoryQueryClient

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

V1_TABLES = (
    "users",
    "transactions",
    "telegram_connections",
    "whatsapp_connections",
    "bank_connections",
)


def sample_tables():
    """A small V1 tenant: two users, one of them already migrated."""
    users = [
        {
            "id": "8f1c2a74-0001-4a52-9d0e-000000000001",
            "email": "amaka@example.com",
            "first_name": "Amaka",
            "last_name": "Okafor",
            "phone": "+2348030000001",
            "account_type": "individual",
            "state": "Lagos",
            "onboarding_completed": True,
            "created_at": "2023-02-10T09:00:00+00:00",
        },
        {
            "id": "8f1c2a74-0002-4a52-9d0e-000000000002",
            "email": "ledger@tundeventures.ng",
            "full_name": "Tunde Bakare",
            "entity_type": "business",
            "business_name": "Tunde Ventures",
            "cac_number": "RC1234567",
            "created_at": "2023-03-01T12:30:00+00:00",
        },
    ]

    transactions = [
        {
            "id": "tx-0001",
            "user_id": users[0]["id"],
            "amount": 45000,
            "type": "credit",
            "narration": "Salary March",
            "date": "2023-03-28",
            "category": "income",
        },
        {
            "id": "tx-0002",
            "user_id": users[1]["id"],
            "amount": 12500,
            "type": "debit",
            "description": "Diesel purchase",
            "date": "2023-04-02",
            "metadata": {"bank": "GTBank"},
        },
        {
            "id": "tx-0003",
            "user_id": "deleted-user",
            "amount": 100,
            "type": "debit",
            "date": "2023-04-05",
        },
    ]

    return {
        "users": users,
        "transactions": transactions,
        "telegram_connections": [
            {"id": "tg-0001", "user_id": users[0]["id"], "telegram_chat_id": "551234"},
        ],
        "bank_connections": [
            {"id": "bank-0001", "user_id": users[1]["id"], "institution": "GTBank", "status": "active"},
        ],
    }


def load_tables(tables_dir: Path):
    """Load <table>.json files exported from V1."""
    tables = {}
    for table in V1_TABLES:
        path = tables_dir / f"{table}.json"
        if not path.exists():
            logger.warning(f"No export for {table}, treating it as empty")
            continue
        with open(path) as f:
            tables[table] = json.load(f)
        logger.info(f"Loaded {len(tables[table])} rows for {table}")
    return tables


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Rehearse a V1 to V2 migration on in-memory stores"
    )
    parser.add_argument(
        "--tables-dir",
        type=Path,
        help="Directory of V1 table exports (default: built-in sample)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Transactions per page"
    )
    parser.add_argument(
        "--runs",
        type=int,
        default=1,
        help="Number of consecutive runs against the same destination"
    )
    parser.add_argument(
        "--report-connection-errors",
        action="store_true",
        help="Record non-conflict connection failures as errors"
    )

    args = parser.parse_args()

    tables = load_tables(args.tables_dir) if args.tables_dir else sample_tables()
    source = InMemoryQueryClient(name="v1", tables=tables)

    # The first sample user was copied by an earlier partial run
    destination = InMemoryQueryClient(
        name="v2",
        unique={"users": [("email",)], "telegram_connections": [("telegram_chat_id",)]},
    )
    if not args.tables_dir:
        first = tables["users"][0]
        destination.insert("users", {
            "id": first["id"],
            "email": first["email"],
            "migrated_from_v1": True,
            "v1_id": first["id"],
        })

    config = MigrationConfig(
        batch_size=args.batch_size,
        connection_policy=(
            ConflictPolicy.REPORT_ERRORS if args.report_connection_errors else ConflictPolicy.SILENT_DROP
        ),
    )

    for attempt in range(1, args.runs + 1):
        logger.info(f"\n=== Rehearsal run {attempt} of {args.runs} ===")
        orchestrator = MigrationOrchestrator(source, destination, config)
        run = orchestrator.run_migration(operator_id="rehearsal")
        print_summary(run)

    logger.info(f"Destination now holds {len(destination.rows('users'))} users and "
                f"{len(destination.rows('transactions'))} transactions")


if __name__ == "__main__":
    main()
