#!/usr/bin/env python3
"""
Mint an API key for the v1 machine-client surface.

Usage: generate_api_key.py "Partner integration" [--description TEXT]
"""

import argparse
from datetime import datetime

from storefront.database import SessionLocal, engine
from storefront.models import Base
from storefront.services.api_key_service import ApiKeyService


def log(message):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] {message}")


def main():
    parser = argparse.ArgumentParser(description="Generate a v1 API key")
    parser.add_argument("name", help="Human-readable name for the key")
    parser.add_argument("--description", default=None, help="Optional description")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        api_key = ApiKeyService().generate(db, args.name, args.description)
    finally:
        db.close()

    log(f"Created API key '{api_key.name}'")
    print(api_key.key)
    print("Send it in the x-api-key header. It is shown only once.")


if __name__ == "__main__":
    main()
