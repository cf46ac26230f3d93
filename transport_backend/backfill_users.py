"""
Backfill script for identity provider users.

Mirrors every user that exists in the identity provider but not in the
local database, e.g. users created before the webhook was set up.

Usage:
    python -m transport_backend.backfill_users
"""

import asyncio
import sys
from transport_backend.app.core.config import settings
from transport_backend.app.db.session import AsyncSessionLocal
from transport_backend.app.models.user import User
from transport_backend.app.services.identity_provider import IdentityProviderClient
from transport_backend.app.services.identity_sync import IdentitySyncService

PAGE_SIZE = 100


async def fetch_all_users(provider: IdentityProviderClient) -> list:
    users, offset = [], 0
    while True:
        page = await provider.find_users(limit=PAGE_SIZE, offset=offset)
        if not page:
            break
        users.extend(page)
        print(f"   Fetched {len(users)} users so far...")
        if len(page) < PAGE_SIZE:
            break
        offset += PAGE_SIZE
    return users


async def backfill_users(provider: IdentityProviderClient = None, session_factory=AsyncSessionLocal) -> dict:
    """
    Create missing local users.

    Returns:
        dict with created / skipped / errors counts
    """
    provider = provider or IdentityProviderClient()
    print("🚀 Starting identity provider users backfill...")

    provider_users = await fetch_all_users(provider)
    print(f"✅ Total users in identity provider: {len(provider_users)}\n")

    counts = {"created": 0, "skipped": 0, "errors": 0}
    async with session_factory() as db:
        for provider_user in provider_users:
            user_id = provider_user.get("id")
            if await db.get(User, user_id):
                print(f"⏭️  Skipping {user_id} (already exists)")
                counts["skipped"] += 1
                continue
            try:
                await IdentitySyncService.user_created(db, provider, provider_user)
                counts["created"] += 1
                print(f"✅ Created: {user_id}")
            except Exception as exc:
                await db.rollback()
                print(f"❌ Error processing user {user_id}: {exc}")
                counts["errors"] += 1

    print("\n📊 Backfill Summary:")
    print(f"   ✅ Created: {counts['created']}")
    print(f"   ⏭️  Skipped: {counts['skipped']}")
    print(f"   ❌ Errors: {counts['errors']}")
    print(f"   📦 Total: {len(provider_users)}")
    return counts


if __name__ == "__main__":
    if not settings.identity_secret_key:
        print("❌ Error: IDENTITY_SECRET_KEY environment variable is required")
        sys.exit(1)
    result = asyncio.run(backfill_users())
    sys.exit(1 if result["errors"] else 0)
