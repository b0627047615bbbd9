#!/usr/bin/env python3
"""
Seed the product catalog from app/data/products.json

Products that already exist (same id) are updated in place.

Usage:
    cd backend && source venv/bin/activate
    python scripts/data_loading/load_products.py [--file path/to/products.json]
"""

import sys
import json
import argparse
from pathlib import Path

# Add backend to path
BACKEND_DIR = Path(__file__).parent.parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from pydantic import ValidationError

from app.domain.product import Product
from app.repositories.product_repository import ProductRepository

DEFAULT_FILE = BACKEND_DIR / 'app' / 'data' / 'products.json'


def main():
    parser = argparse.ArgumentParser(description='Load products into the database')
    parser.add_argument('--file', default=str(DEFAULT_FILE), help='JSON file with a list of products')
    args = parser.parse_args()

    with open(args.file, encoding='utf-8') as f:
        raw_products = json.load(f)

    print(f"Loading {len(raw_products)} products from {args.file}")

    repo = ProductRepository()
    loaded = 0
    for position, raw in enumerate(raw_products):
        try:
            product = Product.model_validate(raw)
        except ValidationError as e:
            print(f"  SKIP {raw.get('id')}: {e}")
            continue

        if product.order is None:
            product.order = position
        repo.save(product)
        loaded += 1
        print(f"  OK {product.id}")

    print(f"\nLoaded {loaded}/{len(raw_products)} products")


if __name__ == "__main__":
    main()
