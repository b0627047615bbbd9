#!/usr/bin/env python3
"""
Script: run_001_create_schema.py
Purpose: Create the storefront tables (users, products, orders)

The schema is declared by the SQLAlchemy models in app/models; this script
creates any table that does not exist yet. Existing tables are left untouched.

Usage:
    cd backend && source venv/bin/activate
    python scripts/migrations/run_001_create_schema.py [--dry-run]

Options:
    --dry-run    List the tables without creating them
"""

import sys
import argparse
from pathlib import Path
from datetime import datetime

# Add backend to path
BACKEND_DIR = Path(__file__).parent.parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from app.core.database import Base, get_engine
import app.models  # noqa: F401  registers the tables on Base.metadata


def print_header(title: str):
    """Print formatted header"""
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}\n")


def main():
    parser = argparse.ArgumentParser(description='Create the storefront schema')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done without making changes')
    args = parser.parse_args()

    print_header("Migration 001: Create Schema")
    print(f"Timestamp: {datetime.now().isoformat()}")
    print(f"Mode: {'DRY RUN' if args.dry_run else 'EXECUTE'}")

    try:
        engine = get_engine()
        existing = set(inspect(engine).get_table_names())
    except Exception as e:
        print(f"\nERROR: {e}")
        sys.exit(1)

    for table in Base.metadata.sorted_tables:
        status = "EXISTS" if table.name in existing else "will be created"
        print(f"  {table.name}: {status}")

    if args.dry_run:
        print("\nDry run, nothing created")
        return

    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as e:
        print(f"\nERROR: {e}")
        sys.exit(1)

    print("\nSchema created successfully")


if __name__ == "__main__":
    main()
