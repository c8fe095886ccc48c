#!/usr/bin/env python3
"""Check that every user with photos has exactly one profile picture.

Pass --fix to repair users with no profile picture or with several.
"""

import argparse
import asyncio
import sys
from collections import defaultdict
from pathlib import Path

# Add parent directory to path to import from matcha
sys.path.insert(0, str(Path(__file__).parent.parent))

from matcha.core.supabase import get_supabase_client
from matcha.services.photo_service import PhotoService


async def run(fix: bool) -> int:
    """Scan the photos table and optionally repair profile picture flags.

    Returns:
        Number of users whose photos break the rule.
    """
    print("🔍 Checking profile pictures...\n")

    try:
        client = get_supabase_client()
    except Exception as e:
        print(f"❌ Error: Failed to initialize Supabase client: {e}")
        sys.exit(1)

    try:
        rows = client.table("photos").select("id, user_id, is_profile_picture").execute().data or []
    except Exception as e:
        print(f"❌ Error: Failed to fetch photos: {e}")
        sys.exit(1)

    flags: dict[int, list[bool]] = defaultdict(list)
    for row in rows:
        flags[row["user_id"]].append(bool(row.get("is_profile_picture")))

    broken = {user_id: sum(values) for user_id, values in flags.items() if sum(values) != 1}

    print("=" * 50)
    print(f"{'User':<12} {'Photos':<10} {'Profile pictures'}")
    print("=" * 50)
    for user_id, count in sorted(broken.items()):
        print(f"{user_id:<12} {len(flags[user_id]):<10} {count}")
    print("=" * 50)

    print("\n📊 Summary:")
    print(f"   Photos: {len(rows)}")
    print(f"   Users with photos: {len(flags)}")
    print(f"   Users to repair: {len(broken)}")

    if fix and broken:
        service = PhotoService()
        for user_id in sorted(broken):
            kept = await service.repair_profile_picture(user_id)
            print(f"   ✓ User {user_id}: profile picture is now photo {kept.id if kept else '-'}")

    print("\n✅ Check complete!")
    return len(broken)


def main() -> None:
    """Main execution function."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--fix", action="store_true", help="Repair broken users")
    args = parser.parse_args()

    broken = asyncio.run(run(args.fix))
    if broken and not args.fix:
        sys.exit(1)


if __name__ == "__main__":
    main()
