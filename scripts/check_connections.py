#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the database connection is working.
Usage: python scripts/check_connections.py
"""
from alumni_portal.db.postgres import test_postgres_connection
from alumni_portal.core.config import get_settings


def main():
    settings = get_settings()
    print("=" * 50)
    print("ALUMNI PORTAL - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Testing PostgreSQL...")
    print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if test_postgres_connection():
        print("    PostgreSQL: CONNECTED")
    else:
        print("    PostgreSQL: FAILED")

    print("\n[2] Placement policy")
    print(f"    max_offers = {settings.max_offers}")
    print(f"    max_new_a1_after_a2 = {settings.max_new_a1_after_a2}")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
