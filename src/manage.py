"""SafeStore management CLI.

Creates and drops the database schema, and purges idle anonymous carts.

Usage:
    python src/manage.py setup-db       # Create all tables
    python src/manage.py drop-db        # Drop all tables
    python src/manage.py reset-db       # Drop and recreate all tables
    python src/manage.py expire-carts   # Delete anonymous carts past their expiry
"""

import argparse
import sys


def _initialized_domain():
    from storefront.domain import storefront

    storefront.init()
    return storefront


def setup_database():
    from storefront.utils.db import setup_db

    domain = _initialized_domain()
    print("Creating storefront database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from storefront.utils.db import drop_db

    domain = _initialized_domain()
    print("Dropping storefront database schema...")
    drop_db(domain)
    print("Done.")


def reset_database():
    from storefront.utils.db import reset_db

    domain = _initialized_domain()
    print("Recreating storefront database schema...")
    reset_db(domain)
    print("Done.")


def expire_carts():
    from storefront.cart.management import ExpireCarts

    domain = _initialized_domain()
    with domain.domain_context():
        removed = domain.process(ExpireCarts(), asynchronous=False)
    print(f"Removed {removed} expired cart(s).")


def main():
    parser = argparse.ArgumentParser(description="SafeStore management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("reset-db", help="Drop and recreate all database tables")
    subparsers.add_parser("expire-carts", help="Delete anonymous carts idle past their expiry")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "reset-db":
        reset_database()
    elif args.command == "expire-carts":
        expire_carts()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
