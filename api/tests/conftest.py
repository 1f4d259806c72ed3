"""Shared fixtures: in-memory edit history, a dict-backed cache store, an edit log builder."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from contribscores.config import Settings
from contribscores.models import Base, Block, Page, Revision, User, UserGroup
from contribscores.models.revision import EMPTY_COMMENT_ID
from contribscores.models.user import BOT_GROUP
from contribscores.services.cache import ResultCache

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeKeyValueStore:
    """In-memory stand-in for the Redis client: get, set(ex=...) and delete."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}
        self.deleted: list[str] = []

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self.deleted.append(key)
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


class EditLog:
    """Builds users, pages and chained revisions in the test database.

    Each edit() chains onto the page's previous revision; the first edit of
    a page is its creation. Timestamps advance one minute per edit from
    BASE_TIME unless given explicitly.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._clock = BASE_TIME
        self._last: dict[int, Revision] = {}
        self._comment_ids = iter(range(EMPTY_COMMENT_ID + 1, 10**9))

    async def user(self, name: str, real_name: str = "") -> User:
        user = User(name=name, real_name=real_name, registered_at=BASE_TIME)
        self.session.add(user)
        await self.session.flush()
        return user

    async def page(self, title: str, namespace: int = 0) -> Page:
        page = Page(title=title, namespace=namespace)
        self.session.add(page)
        await self.session.flush()
        return page

    async def edit(
        self,
        user: User,
        page: Page,
        length: int,
        at: Optional[datetime] = None,
        comment: Optional[bool] = True,
    ) -> Revision:
        """Add a revision; comment=False stores the empty-comment sentinel, None stores NULL."""
        if at is None:
            self._clock += timedelta(minutes=1)
            at = self._clock
        if comment is None:
            comment_id = None
        elif comment:
            comment_id = next(self._comment_ids)
        else:
            comment_id = EMPTY_COMMENT_ID

        parent = self._last.get(page.id)
        revision = Revision(
            page_id=page.id,
            user_id=user.id,
            timestamp=at,
            length=length,
            parent_id=parent.id if parent else None,
            comment_id=comment_id,
        )
        self.session.add(revision)
        await self.session.flush()
        self._last[page.id] = revision
        return revision

    async def edits(self, user: User, pages: list[Page], per_page: int = 1, length: int = 100) -> None:
        for _ in range(per_page):
            for page in pages:
                await self.edit(user, page, length)

    async def pages(self, prefix: str, count: int, namespace: int = 0) -> list[Page]:
        return [await self.page(f"{prefix}_{i}", namespace) for i in range(count)]

    async def block(self, user: User) -> None:
        self.session.add(Block(user_id=user.id))
        await self.session.flush()

    async def add_group(self, user: User, group: str = BOT_GROUP, expires_at: Optional[datetime] = None) -> None:
        self.session.add(UserGroup(user_id=user.id, group=group, expires_at=expires_at))
        await self.session.flush()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


@pytest.fixture
def edit_log(db) -> EditLog:
    return EditLog(db)


@pytest.fixture
def store() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture
def cache(store) -> ResultCache:
    return ResultCache(store, ttl=86400)


@pytest.fixture
def app_settings() -> Settings:
    """Settings with every filter off and caching on, independent of the environment."""
    return Settings(
        _env_file=None,
        contrib_score_disable_cache=False,
        contrib_score_ignore_bots=False,
        contrib_score_ignore_blocked_users=False,
        contrib_score_ignore_usernames=[],
        contrib_score_include_namespaces=[],
        contrib_score_metric="score",
        contrib_scores_use_real_name=False,
    )
