"""Tests for generate_leaderboard: candidate pools, final scoring and tie-breaks."""

from datetime import datetime, timedelta, timezone

import pytest

from contribscores.models.metric import InvalidMetricError, MetricKind
from contribscores.schemas.leaderboard import ScoredEntry
from contribscores.services.evaluator import get_metric_value
from contribscores.services.filters import FilterSet
from contribscores.services.leaderboard import generate_leaderboard, rank_entries, window_cutoff

from .conftest import BASE_TIME


@pytest.fixture
async def abc_log(edit_log):
    """A: 10 pages / 10 edits, B: 1 page / 50 edits, C: 5 pages / 5 edits."""
    a = await edit_log.user("A")
    b = await edit_log.user("B")
    c = await edit_log.user("C")
    await edit_log.edits(a, await edit_log.pages("A", 10))
    await edit_log.edits(b, await edit_log.pages("B", 1), per_page=50)
    await edit_log.edits(c, await edit_log.pages("C", 5))
    return a, b, c


class TestDefaultScore:
    async def test_orders_by_score_formula(self, db, abc_log, app_settings):
        entries = await generate_leaderboard(db, None, days=0, limit=3, app_settings=app_settings)

        assert [(e.rank, e.user_name, e.score) for e in entries] == [
            (1, "B", 15),  # 1 + sqrt(49) * 2
            (2, "A", 10),
            (3, "C", 5),
        ]

    async def test_entries_carry_raw_counts(self, db, abc_log, app_settings):
        entries = await generate_leaderboard(db, None, days=0, limit=3, app_settings=app_settings)
        b = entries[0]
        assert (b.page_count, b.creation_count, b.rev_count) == (1, 1, 50)
        assert b.wiki_rank == pytest.approx(15.0)
        assert b.display_name == "B"

    async def test_truncates_to_limit(self, db, abc_log, app_settings):
        entries = await generate_leaderboard(db, None, days=0, limit=2, app_settings=app_settings)
        assert [e.user_name for e in entries] == ["B", "A"]
        assert [e.rank for e in entries] == [1, 2]

    async def test_empty_history_gives_empty_board(self, db, app_settings):
        assert await generate_leaderboard(db, None, days=7, limit=10, app_settings=app_settings) == []

    @pytest.mark.parametrize("limit", [0, -5])
    async def test_non_positive_limit_is_rejected(self, db, app_settings, limit):
        with pytest.raises(ValueError):
            await generate_leaderboard(db, None, days=7, limit=limit, app_settings=app_settings)

    async def test_invalid_metric_is_rejected(self, db, app_settings):
        with pytest.raises(InvalidMetricError):
            await generate_leaderboard(db, None, days=7, limit=5, metric="karma", app_settings=app_settings)

    async def test_real_names_when_enabled(self, db, edit_log, app_settings):
        app_settings.contrib_scores_use_real_name = True
        named = await edit_log.user("Jdoe", real_name="Jane Doe")
        plain = await edit_log.user("Anon")
        await edit_log.edits(named, await edit_log.pages("N", 2))
        await edit_log.edits(plain, await edit_log.pages("P", 1))

        entries = await generate_leaderboard(db, None, days=0, limit=5, app_settings=app_settings)
        assert [(e.user_name, e.display_name) for e in entries] == [
            ("Jdoe", "Jane Doe"),
            ("Anon", "Anon"),
        ]


class TestTieBreak:
    async def test_equal_scores_rank_higher_activity_first(self, db, edit_log, app_settings):
        # Created first, so Y wins every tie the candidate queries see
        y = await edit_log.user("Y")
        x = await edit_log.user("X")
        pages = await edit_log.pages("T", 4)
        await edit_log.edits(x, pages)   # 4 creations: activity 4 + 4 + 4 = 12
        await edit_log.edits(y, pages)   # 0 creations: activity 4 + 0 + 4 = 8

        entries = await generate_leaderboard(db, None, days=0, limit=2, app_settings=app_settings)
        assert [(e.user_name, e.score, e.rank) for e in entries] == [("X", 4, 1), ("Y", 4, 2)]

    def test_rank_entries_sort_keys(self):
        def entry(user_id, name, score, pages, creations, revs):
            return ScoredEntry(
                user_id=user_id, user_name=name, display_name=name,
                page_count=pages, creation_count=creations, rev_count=revs,
                wiki_rank=float(score), score=score,
            )

        ranked = rank_entries(
            [entry(1, "low", 3, 1, 1, 1), entry(2, "tie_small", 9, 2, 0, 3), entry(3, "tie_big", 9, 3, 1, 5)],
            limit=10,
        )
        assert [(e.user_name, e.rank) for e in ranked] == [
            ("tie_big", 1), ("tie_small", 2), ("low", 3),
        ]


class TestCandidatePools:
    async def test_pool_union_can_miss_a_balanced_editor(self, db, edit_log, app_settings):
        """Neither pool keeps an editor who leads on neither pages nor edits.

        M (8 pages, 28 edits, score 17) would top a full scan, but with
        limit=1 the pools hold only P (most pages) and R (most edits).
        """
        p = await edit_log.user("P")
        r = await edit_log.user("R")
        m = await edit_log.user("M")
        await edit_log.edits(p, await edit_log.pages("P", 10))
        await edit_log.edits(r, await edit_log.pages("R", 1), per_page=30)
        m_pages = await edit_log.pages("M", 8)
        await edit_log.edits(m, m_pages)
        for _ in range(20):
            await edit_log.edit(m, m_pages[0], 100)

        entries = await generate_leaderboard(db, None, days=0, limit=1, app_settings=app_settings)
        assert [(e.user_name, e.score) for e in entries] == [("R", 12)]

        full = await generate_leaderboard(db, None, days=0, limit=3, app_settings=app_settings)
        assert full[0].user_name == "M"
        assert full[0].score == 17


class TestWindow:
    async def test_window_counts_only_recent_edits(self, db, edit_log, app_settings):
        now = BASE_TIME + timedelta(days=30)
        veteran = await edit_log.user("Veteran")
        newcomer = await edit_log.user("Newcomer")
        old_pages = await edit_log.pages("Old", 6)
        for page in old_pages:
            await edit_log.edit(veteran, page, 100, at=BASE_TIME)
        await edit_log.edit(veteran, old_pages[0], 150, at=now - timedelta(days=1))
        for page in await edit_log.pages("New", 3):
            await edit_log.edit(newcomer, page, 100, at=now - timedelta(days=2))

        week = await generate_leaderboard(db, None, days=7, limit=5, app_settings=app_settings, now=now)
        assert [(e.user_name, e.rev_count, e.score) for e in week] == [
            ("Newcomer", 3, 3),
            ("Veteran", 1, 1),
        ]

        all_time = await generate_leaderboard(db, None, days=0, limit=5, app_settings=app_settings, now=now)
        assert all_time[0].user_name == "Veteran"

    def test_cutoff(self):
        assert window_cutoff(0) is None
        assert window_cutoff(-3) is None
        assert window_cutoff(7, now=BASE_TIME) == BASE_TIME - timedelta(days=7)


class TestAlternateMetric:
    async def test_configured_metric_recomputes_final_scores(self, db, edit_log, cache, app_settings):
        app_settings.contrib_score_metric = MetricKind.characters
        big = await edit_log.user("BigWriter")
        busy = await edit_log.user("BusyEditor")
        await edit_log.edit(big, await edit_log.page("Essay"), 5000)
        await edit_log.edits(busy, await edit_log.pages("Stub", 6), length=10)

        entries = await generate_leaderboard(db, cache, days=0, limit=5, app_settings=app_settings)
        assert [(e.user_name, e.score) for e in entries] == [("BigWriter", 5000), ("BusyEditor", 60)]
        # Primary score is still reported alongside
        assert entries[1].wiki_rank == pytest.approx(6.0)

    async def test_metric_argument_overrides_settings(self, db, abc_log, app_settings):
        entries = await generate_leaderboard(
            db, None, days=0, limit=3, metric=MetricKind.creations, app_settings=app_settings
        )
        assert [(e.user_name, e.score) for e in entries] == [("A", 10), ("C", 5), ("B", 1)]

    async def test_windowed_recompute_uses_cutoff_and_skips_cache(self, db, edit_log, cache, store, app_settings):
        now = BASE_TIME + timedelta(days=30)
        user = await edit_log.user("Windowed")
        page = await edit_log.page("W")
        await edit_log.edit(user, page, 100, at=BASE_TIME)
        await edit_log.edit(user, page, 300, at=now - timedelta(days=1))

        entries = await generate_leaderboard(
            db, cache, days=7, limit=5, metric=MetricKind.characters,
            app_settings=app_settings, now=now,
        )
        assert [(e.user_name, e.score) for e in entries] == [("Windowed", 200)]
        assert store.data == {}

    async def test_all_time_recompute_fills_the_cache(self, db, abc_log, cache, store, app_settings):
        await generate_leaderboard(
            db, cache, days=0, limit=3, metric=MetricKind.changes, app_settings=app_settings
        )
        assert sorted(store.data.values(), key=int) == ["5", "10", "50"]


class TestFilters:
    async def test_bots_and_blocked_users_are_left_out(self, db, edit_log, abc_log, app_settings):
        a, b, c = abc_log
        await edit_log.add_group(b)
        await edit_log.block(a)
        app_settings.contrib_score_ignore_bots = True
        app_settings.contrib_score_ignore_blocked_users = True

        entries = await generate_leaderboard(db, None, days=0, limit=3, app_settings=app_settings)
        assert [e.user_name for e in entries] == ["C"]

    async def test_ignored_usernames(self, db, abc_log, app_settings):
        filters = FilterSet(ignore_usernames=frozenset({"B"}))
        entries = await generate_leaderboard(
            db, None, days=0, limit=3, filters=filters, app_settings=app_settings
        )
        assert [e.user_name for e in entries] == ["A", "C"]

    async def test_namespace_allow_list(self, db, edit_log, app_settings):
        main = await edit_log.user("MainEditor")
        talker = await edit_log.user("Talker")
        await edit_log.edits(main, await edit_log.pages("Main", 3, namespace=0))
        await edit_log.edits(talker, await edit_log.pages("Talk", 5, namespace=1))
        app_settings.contrib_score_include_namespaces = [0]

        entries = await generate_leaderboard(db, None, days=0, limit=5, app_settings=app_settings)
        assert [(e.user_name, e.page_count) for e in entries] == [("MainEditor", 3)]

    async def test_leaderboard_and_inline_scores_agree_under_filters(
        self, db, edit_log, cache, app_settings
    ):
        user = await edit_log.user("Mixed")
        main_pages = await edit_log.pages("Main", 4, namespace=0)
        await edit_log.edits(user, main_pages, per_page=3)
        await edit_log.edits(user, await edit_log.pages("Talk", 6, namespace=1))
        app_settings.contrib_score_include_namespaces = [0]

        [entry] = await generate_leaderboard(db, None, days=0, limit=5, app_settings=app_settings)
        inline = await get_metric_value(db, cache, user, MetricKind.score, app_settings=app_settings)
        assert entry.score == inline == 10  # round(4 + sqrt(8) * 2)

    async def test_bot_expiry_uses_the_injected_clock_for_recomputes(
        self, db, edit_log, cache, app_settings
    ):
        """A membership expired at `now` must not hide the user's recomputed score."""
        now = datetime(2100, 1, 1, tzinfo=timezone.utc)
        former = await edit_log.user("RetiredBot")
        await edit_log.edits(former, await edit_log.pages("R", 3))
        await edit_log.add_group(former, expires_at=now - timedelta(days=1))
        app_settings.contrib_score_ignore_bots = True

        entries = await generate_leaderboard(
            db, cache, days=0, limit=5, metric=MetricKind.changes,
            app_settings=app_settings, now=now,
        )
        assert [(e.user_name, e.score) for e in entries] == [("RetiredBot", 3)]
