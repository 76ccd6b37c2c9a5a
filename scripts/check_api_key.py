#!/usr/bin/env python3
"""
Report whether an API key exists, is active and when it was last used.

Exits non-zero when the key is unknown or inactive.
"""

import argparse
import sys

from storefront.database import SessionLocal
from storefront.services.api_key_service import ApiKeyService


def main():
    parser = argparse.ArgumentParser(description="Inspect a v1 API key")
    parser.add_argument("key", help="Raw API key")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        api_key = ApiKeyService().lookup(db, args.key)
    finally:
        db.close()

    if api_key is None:
        print("Key not found")
        sys.exit(1)

    print(f"Name:        {api_key.name}")
    print(f"Description: {api_key.description or '-'}")
    print(f"Active:      {'yes' if api_key.is_active else 'no'}")
    print(f"Created:     {api_key.created_at}")
    print(f"Last used:   {api_key.last_used or 'never'}")

    if not api_key.is_active:
        sys.exit(1)


if __name__ == "__main__":
    main()
