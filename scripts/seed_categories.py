"""Seed default categories for a user."""

import argparse
import asyncio
from pathlib import Path
import sys
from typing import List

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from subtracker.core.config import settings  # noqa: E402
from subtracker.core.database import Database  # noqa: E402
from subtracker.core.errors import DuplicateNameError, NotFoundError  # noqa: E402
from subtracker.domain.categories.services import CategoryStore  # noqa: E402
from subtracker.domain.subscriptions.models import Subscription  # noqa: F401,E402
from subtracker.domain.users.models import User  # noqa: F401,E402

DEFAULT_CATEGORIES: List[str] = [
    "Streaming",
    "Music",
    "Software",
    "Cloud Storage",
    "News",
    "Fitness",
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed default categories for a user")
    parser.add_argument("--user-id", type=int, required=True, help="Target user id")
    return parser.parse_args()


async def seed_categories(user_id: int, database: Database) -> int:
    """Create the default categories the user does not have yet; returns how many were added."""
    created = 0
    async with database.session() as session:
        store = CategoryStore(session)
        for name in DEFAULT_CATEGORIES:
            try:
                await store.create_category(name, user_id)
            except DuplicateNameError:
                continue
            created += 1
    return created


async def main(user_id: int) -> int:
    database = Database(settings.DATABASE_URL)
    await database.connect()
    try:
        created = await seed_categories(user_id, database)
    except NotFoundError:
        print(f"User {user_id} does not exist", file=sys.stderr)
        return 1
    finally:
        await database.disconnect()
    print(f"Created {created} categories for user {user_id}")
    return 0


if __name__ == "__main__":
    args = parse_args()
    sys.exit(asyncio.run(main(args.user_id)))
