"""Command-line interface for the tenant migrator."""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .exceptions import MigrationServiceError
from .models.legacy import LegacyTransaction, LegacyUser
from .models.migration import MigrationConfig, MigrationRun
from .orchestrator import MigrationOrchestrator
from .services.transformer import transform_transaction, transform_user

logger = logging.getLogger(__name__)


def load_config(args) -> MigrationConfig:
    """Config from --config JSON if given, else the environment; CLI flags win."""
    if args.config:
        with open(args.config) as f:
            config = MigrationConfig.from_dict(json.load(f))
    else:
        config = MigrationConfig.from_env()

    if args.batch_size:
        config.batch_size = args.batch_size
    if args.timeout:
        config.timeout_seconds = args.timeout

    return config


def print_summary(run: MigrationRun) -> None:
    stats = run.stats
    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE")
    print("=" * 60)
    print(f"Status: {run.status.value}")
    if run.duration_seconds is not None:
        print(f"Duration: {run.duration_seconds:.2f}s")
    print(f"Users: {stats.users.migrated} migrated, {stats.users.skipped} skipped, {stats.users.failed} failed")
    print(f"Transactions: {stats.transactions.migrated} migrated, {stats.transactions.failed} failed")
    print(
        f"Connections: {stats.connections.total} total "
        f"({stats.connections.telegram} Telegram, {stats.connections.whatsapp} WhatsApp, "
        f"{stats.connections.bank} Bank)"
    )
    if stats.errors:
        print(f"\nErrors ({len(stats.errors)}):")
        for line in stats.errors:
            print(f"  - {line}")


def run_migration(args) -> int:
    """Run a migration against the configured stores."""
    try:
        config = load_config(args)
        orchestrator = MigrationOrchestrator.from_config(config)
        run = orchestrator.run_migration(operator_id=args.operator_id)
    except MigrationServiceError as e:
        print(f"Migration failed: {e.message}", file=sys.stderr)
        return 1

    print_summary(run)
    return 0


def preview_rows(entity: str, rows: List[Dict[str, Any]], owner_id: str = "preview-owner") -> List[Dict[str, Any]]:
    """Apply the entity's transform to each row, reporting invalid rows inline."""
    output = []
    for row in rows:
        try:
            if entity == "users":
                output.append(transform_user(LegacyUser.model_validate(row)))
            else:
                output.append(transform_transaction(LegacyTransaction.model_validate(row), owner_id))
        except ValidationError as e:
            output.append({"id": row.get("id"), "errors": e.errors(include_url=False)})
    return output


def run_preview(args) -> int:
    """Preview the transform for a JSON file of legacy rows."""
    with open(args.input) as f:
        data = json.load(f)

    if not isinstance(data, list):
        data = [data]

    print(json.dumps(preview_rows(args.entity, data, args.owner_id), indent=2, default=str))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Tenant Migrator - copy a tenant's data from the V1 store to the V2 store"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Run a migration")
    run_parser.add_argument("--config", help="Path to a JSON config file (default: environment)")
    run_parser.add_argument("--operator-id", help="Destination user id recorded on the audit entry")
    run_parser.add_argument("--batch-size", type=int, help="Transactions per page")
    run_parser.add_argument("--timeout", type=float, help="Time budget for the whole run, in seconds")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Preview transformation
    preview_parser = subparsers.add_parser("preview", help="Preview a transformation")
    preview_parser.add_argument("--input", required=True, help="Path to a JSON file of V1 rows")
    preview_parser.add_argument("--entity", required=True, choices=["users", "transactions"])
    preview_parser.add_argument("--owner-id", default="preview-owner", help="Owner id used for transactions")

    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == "run":
        return run_migration(args)
    elif args.command == "preview":
        return run_preview(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
