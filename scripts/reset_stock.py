#!/usr/bin/env python3
"""
Set every product's stock to the same level, e.g. between load-test runs.
"""

import argparse
from datetime import datetime

from storefront.database import SessionLocal
from storefront.models import Product


def log(message):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] {message}")


def main():
    parser = argparse.ArgumentParser(description="Reset product stock levels")
    parser.add_argument("--stock", type=int, default=50, help="Stock level to set (default: 50)")
    parser.add_argument("--category", default=None, help="Only reset products in this category")
    args = parser.parse_args()

    if args.stock < 0:
        parser.error("--stock must not be negative")

    db = SessionLocal()
    try:
        query = db.query(Product)
        if args.category:
            query = query.filter(Product.category == args.category)
        updated = query.update({Product.stock: args.stock}, synchronize_session=False)
        db.commit()
    finally:
        db.close()

    log(f"Reset stock to {args.stock} for {updated} products")


if __name__ == "__main__":
    main()
