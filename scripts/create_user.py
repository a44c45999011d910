#!/usr/bin/env python3
"""
Script to create a user directly in the configured store.

Usage:
    python scripts/create_user.py +34600111222
    python scripts/create_user.py +34600111222 --admin --verified
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from servipro.auth import Role, UserStore, normalize_phone
from servipro.config import load_config
from servipro.errors import ConfigError, DuplicateKeyError, StorageError
from servipro.storage import create_store


def main():
    parser = argparse.ArgumentParser(description="Create a new user")
    parser.add_argument("phone", nargs="?", help="Phone number (e.g., +34600111222)")
    parser.add_argument("--admin", action="store_true", help="Give the user the admin role")
    parser.add_argument("--verified", action="store_true", help="Mark the phone as verified")
    args = parser.parse_args()

    # Get phone number
    phone = args.phone
    if not phone:
        phone = input("Phone number (e.g., +34600111222): ").strip()

    if not phone:
        print("❌ Phone number is required!")
        sys.exit(1)

    # Normalize and validate phone
    normalized = normalize_phone(phone)
    if not normalized:
        print(f"❌ Invalid phone number: {phone}")
        sys.exit(1)

    try:
        config = load_config()
    except ConfigError as e:
        print("❌ Invalid configuration:")
        for problem in e.problems:
            print(f"   - {problem}")
        sys.exit(1)

    store = create_store(config.storage)
    users = UserStore(store)

    try:
        # Check if user already exists
        existing = users.get_by_phone(normalized)
        if existing:
            print(f"❌ User with phone {normalized} already exists!")
            print(f"   User ID: {existing.user_id}")
            sys.exit(1)

        user = users.create_user(
            phone=normalized,
            role=Role.ADMIN if args.admin else Role.STANDARD,
            verified=args.verified
        )
        print()
        print("✅ User created successfully!")
        print(f"   Phone: {user.phone}")
        print(f"   User ID: {user.user_id}")
        print(f"   Role: {user.role.value}")
        print(f"   Verified: {'Yes' if user.verified else 'No'}")
    except (DuplicateKeyError, StorageError) as e:
        print(f"❌ Failed to create user: {e}")
        sys.exit(1)
    finally:
        store.close()


if __name__ == "__main__":
    main()
