"""Populate a database with synthetic edit history for local testing and load tests.

Inserts users, pages and revisions with realistic shapes:
- A long tail of editors: a few prolific users, many occasional ones.
- Every page starts with a creation revision (parent_id NULL); later
  revisions chain onto the previous revision of the same page.
- Content length drifts up and down, so both additions and removals occur.
- Roughly 70% of edits carry an edit summary (comment_id > 1).
- A handful of bot accounts and one blocked user exercise the filters.

Uses faker with seed=42 so runs are reproducible.

Usage:
    cd api
    DATABASE_URL="postgresql+asyncpg://..." python -m scripts.generate_edit_history --revisions 50000
"""

import argparse
import asyncio
import random
from datetime import datetime, timedelta, timezone

from faker import Faker
from sqlalchemy import insert

from contribscores.database import async_session_factory
from contribscores.models.block import Block
from contribscores.models.page import Page
from contribscores.models.revision import EMPTY_COMMENT_ID, Revision
from contribscores.models.user import BOT_GROUP, User, UserGroup

BATCH_SIZE = 1000
HISTORY_DAYS = 365
NAMESPACES = [0, 0, 0, 0, 1, 2, 4]  # weighted towards main namespace


def _generate_users(fake: Faker, count: int) -> list[dict]:
    names: set[str] = set()
    users = []
    while len(users) < count:
        name = fake.user_name().capitalize()
        if name in names:
            continue
        names.add(name)
        users.append(
            {
                "id": len(users) + 1,
                "name": name,
                "real_name": fake.name() if random.random() < 0.5 else "",
                "registered_at": fake.date_time_between("-3y", "-1y", tzinfo=timezone.utc),
            }
        )
    return users


def _generate_revisions(user_ids: list[int], page_count: int, total: int, now: datetime):
    """Build (page rows, revision rows) with parent chains per page."""
    pages = [
        {"id": i + 1, "namespace": random.choice(NAMESPACES), "title": f"Page_{i + 1}"}
        for i in range(page_count)
    ]
    # Pareto weights give the long tail of editor activity
    weights = [random.paretovariate(1.2) for _ in user_ids]

    last_revision: dict[int, tuple[int, int]] = {}  # page id -> (rev id, length)
    revisions = []
    start = now - timedelta(days=HISTORY_DAYS)
    step = timedelta(days=HISTORY_DAYS) / max(total, 1)

    for rev_id in range(1, total + 1):
        page_id = random.randint(1, page_count)
        user_id = random.choices(user_ids, weights=weights)[0]
        parent = last_revision.get(page_id)
        if parent is None:
            parent_id, length = None, random.randint(50, 5000)
        else:
            parent_id, previous_length = parent
            length = max(0, previous_length + random.randint(-800, 1200))
        comment_id = random.randint(2, 10_000) if random.random() < 0.7 else EMPTY_COMMENT_ID
        revisions.append(
            {
                "id": rev_id,
                "page_id": page_id,
                "user_id": user_id,
                "timestamp": start + step * rev_id,
                "length": length,
                "parent_id": parent_id,
                "comment_id": comment_id,
            }
        )
        last_revision[page_id] = (rev_id, length)

    return pages, revisions


async def generate(users: int, pages: int, revisions: int, bots: int) -> None:
    fake = Faker()
    Faker.seed(42)
    random.seed(42)
    now = datetime.now(timezone.utc)

    user_rows = _generate_users(fake, users)
    user_ids = [u["id"] for u in user_rows]
    page_rows, revision_rows = _generate_revisions(user_ids, pages, revisions, now)

    async with async_session_factory() as session:
        await session.execute(insert(User), user_rows)
        await session.execute(insert(Page), page_rows)
        for offset in range(0, len(revision_rows), BATCH_SIZE):
            await session.execute(insert(Revision), revision_rows[offset:offset + BATCH_SIZE])
            print(f"  inserted {min(offset + BATCH_SIZE, len(revision_rows))}/{len(revision_rows)} revisions")

        bot_ids = user_ids[:bots]
        if bot_ids:
            await session.execute(
                insert(UserGroup),
                [{"user_id": uid, "group": BOT_GROUP, "expires_at": None} for uid in bot_ids],
            )
        if len(user_ids) > bots:
            await session.execute(insert(Block), [{"user_id": user_ids[bots], "expires_at": None}])

        await session.commit()

    print(f"Done: {users} users, {pages} pages, {revisions} revisions, {bots} bots")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--users", type=int, default=500)
    parser.add_argument("--pages", type=int, default=5000)
    parser.add_argument("--revisions", type=int, default=50_000)
    parser.add_argument("--bots", type=int, default=3)
    args = parser.parse_args()
    asyncio.run(generate(args.users, args.pages, args.revisions, args.bots))


if __name__ == "__main__":
    main()
