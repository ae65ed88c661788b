#!/usr/bin/env python3
"""
Seed script: creates a demo account and API key, or revokes a key.
Run after migrations:
    python scripts/seed.py
    python scripts/seed.py --revoke <api-key>
"""

import argparse
import asyncio
import logging

from callgate.config import settings
from callgate.database import Database
from callgate.storage.repositories import (
    create_account,
    get_account_by_email,
    issue_api_key,
    revoke_api_key,
)

DEMO_EMAIL = "test@example.com"
DEMO_NAME = "Demo Account"


async def seed(database: Database) -> str:
    async with database.session() as session:
        account = await get_account_by_email(session, DEMO_EMAIL)
        if account:
            print("Account already exists, issuing an additional key.")
        else:
            account = await create_account(session, DEMO_NAME, email=DEMO_EMAIL)
        _, secret = await issue_api_key(session, account.account_id, name="Demo API Key")
        await session.commit()

    print("Seed complete!")
    print(f"Account: {account.account_id}")
    print(f"API Key: {secret}")
    print(f"Use: X-API-Key: {secret}")
    print("Example: curl -X POST http://localhost:8000/calls \\")
    print('  -H "X-API-Key: ' + secret + '" \\')
    print('  -H "Content-Type: application/json" \\')
    print('  -d \'{"contactName":"John Smith","phone":"(555) 123-4567","status":"Qualified","timestamp":"2026-02-20"}\'')
    return secret


async def revoke(database: Database, secret: str) -> bool:
    async with database.session() as session:
        revoked = await revoke_api_key(session, secret)
        await session.commit()
    print("Key revoked." if revoked else "No such key.")
    return revoked


async def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--revoke", metavar="API_KEY", help="revoke this key instead of seeding")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level)
    database = Database.from_settings(settings)
    try:
        if args.revoke:
            await revoke(database, args.revoke)
        else:
            await seed(database)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
