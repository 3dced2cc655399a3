"""Storefront management CLI.

Creates and drops the database schemas of both providers, and sweeps
settlements that were left unfinished.

Usage:
    python src/manage.py setup-db
    python src/manage.py drop-db
    python src/manage.py reconcile [--older-than MINUTES] [--settlement ID]
"""

import argparse
import sys


def setup_databases():
    """Create the schemas of the default and directory providers."""
    from storefront.domain import storefront
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Creating storefront database schema...")
    setup_db(storefront)
    print("Done.")


def drop_databases():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Dropping storefront database schema...")
    drop_db(storefront)
    print("Done.")


def reconcile_settlements(older_than=None, settlement_id=None):
    """Resume one settlement, or every settlement left unfinished for too long."""
    from storefront.checkout.orchestrator import reconcile, sweep_stale
    from storefront.domain import storefront

    storefront.init()
    with storefront.domain_context():
        settlements = [reconcile(settlement_id)] if settlement_id else sweep_stale(older_than)

    for settlement in settlements:
        print(f"  {settlement.id}: {settlement.status}")
    print(f"Reconciled {len(settlements)} settlement(s).")


def main():
    parser = argparse.ArgumentParser(description="Storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    reconcile_parser = subparsers.add_parser("reconcile", help="Resume unfinished settlements")
    reconcile_parser.add_argument(
        "--older-than",
        type=float,
        default=None,
        help="Minutes a settlement must have been idle (default: SETTLEMENT_STALE_MINUTES)",
    )
    reconcile_parser.add_argument("--settlement", default=None, help="Reconcile a single settlement")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "reconcile":
        reconcile_settlements(args.older_than, args.settlement)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
