"""
Tests for history context assembly and backfill.

Backfill is requested at most once per team (and per pairing) for the
lifetime of a memo, and only when local history is sparse.
"""

import asyncio
from datetime import datetime, timedelta

import pytest

from matchcast.etl.base import HistoryProvider, MatchData
from matchcast.prediction.history import BackfillMemo, HistoryContextBuilder, pairing_key, team_key
from matchcast.store import MatchStore
from tests.conftest import make_match

KICKOFF = datetime(2024, 6, 1, 18, 0)


class FakeProvider(HistoryProvider):
    """Stores synthetic finished matches and records every call."""

    def __init__(self, session_factory, matches_per_call=5, fail=False, empty_first=False):
        self.session_factory = session_factory
        self.matches_per_call = matches_per_call
        self.fail = fail
        # First call per team or pairing comes back empty, as on a provider outage
        self.empty_first = empty_first
        self._seen = set()
        self.team_calls = []
        self.pairing_calls = []
        self._next_id = 10_000

    def _fixtures(self, home, away, home_id, away_id, sport):
        fixtures = []
        for i in range(self.matches_per_call):
            self._next_id += 1
            fixtures.append(
                MatchData(
                    match_id=self._next_id,
                    sport=sport,
                    date=KICKOFF - timedelta(days=7 * (i + 1)),
                    status="FT",
                    home_team_id=home_id,
                    away_team_id=away_id,
                    home_team=home,
                    away_team=away,
                    home_goals=2,
                    away_goals=1,
                )
            )
        return fixtures

    def _outage(self, key):
        if self.empty_first and key not in self._seen:
            self._seen.add(key)
            return True
        return False

    async def _store(self, fixtures):
        async with self.session_factory() as session:
            await MatchStore(session).upsert_matches(m.to_model() for m in fixtures)
        return fixtures

    async def backfill_team_history(self, team_id, limit, sport):
        self.team_calls.append((sport, team_id, limit))
        if self.fail:
            raise RuntimeError("provider down")
        if self._outage(("team", sport, team_id)):
            return []
        name = {1: "Alpha", 2: "Beta"}[team_id]
        return await self._store(self._fixtures(name, f"Opponent {team_id}", team_id, 900, sport))

    async def backfill_head_to_head(self, team_a_id, team_b_id, limit, sport):
        self.pairing_calls.append((sport, team_a_id, team_b_id, limit))
        if self.fail:
            raise RuntimeError("provider down")
        if self._outage(("h2h", sport, team_a_id, team_b_id)):
            return []
        return await self._store(self._fixtures("Alpha", "Beta", team_a_id, team_b_id, sport))

    async def fetch_matches(self, sport, mode="live", limit=20, date_range=None):
        return []

    async def close(self):
        pass


async def _seed_target(session, **overrides):
    fields = dict(home_team_id=1, away_team_id=2, status="NS")
    fields.update(overrides)
    target = make_match(500, "Alpha", "Beta", KICKOFF, **fields)
    await MatchStore(session).upsert_matches([target])
    return await MatchStore(session).get_match(500)


class TestBackfillMemo:

    @pytest.mark.asyncio
    async def test_claim_once(self):
        memo = BackfillMemo()
        assert await memo.claim(team_key("football", 1)) is True
        assert await memo.claim(team_key("football", 1)) is False
        assert team_key("football", 1) in memo
        assert len(memo) == 1

    @pytest.mark.asyncio
    async def test_released_key_can_be_claimed_again(self):
        memo = BackfillMemo()
        key = pairing_key("football", 2, 1)
        assert await memo.claim(key) is True
        await memo.release(key)

        assert key not in memo
        assert await memo.claim(key) is True

    @pytest.mark.asyncio
    async def test_concurrent_claims_have_one_winner(self):
        memo = BackfillMemo()
        results = await asyncio.gather(*(memo.claim(("football", 7)) for _ in range(5)))
        assert results.count(True) == 1

    def test_pairing_key_is_order_independent(self):
        assert pairing_key("football", 1, 2) == pairing_key("football", 2, 1)
        assert pairing_key("football", 1, 2) != pairing_key("basketball", 1, 2)
        assert team_key("football", 1) != team_key("basketball", 1)


class TestHistoryContextBuilder:

    @pytest.mark.asyncio
    async def test_sparse_history_backfilled_once(self, session, session_factory):
        target = await _seed_target(session)
        provider = FakeProvider(session_factory)
        memo = BackfillMemo()
        builder = HistoryContextBuilder(MatchStore(session), provider, memo)

        context = await builder.build(target)

        assert provider.team_calls == [("football", 1, 12), ("football", 2, 12)]
        assert provider.pairing_calls == [("football", 1, 2, 10)]
        assert len(context.home_recent) >= 3
        assert len(context.away_recent) >= 3
        assert len(context.head_to_head) == 5

        # A second request for the same match reuses the memo
        await HistoryContextBuilder(MatchStore(session), provider, memo).build(target)
        assert len(provider.team_calls) == 2
        assert len(provider.pairing_calls) == 1

    @pytest.mark.asyncio
    async def test_enough_local_history_skips_backfill(self, session, session_factory):
        target = await _seed_target(session)
        history = []
        for i in range(3):
            day = KICKOFF - timedelta(days=10 * (i + 1))
            history.append(make_match(100 + i, "Alpha", "Beta", day, 1, 0))
        await MatchStore(session).upsert_matches(history)
        provider = FakeProvider(session_factory)

        context = await HistoryContextBuilder(MatchStore(session), provider).build(target)

        assert provider.team_calls == []
        assert provider.pairing_calls == []
        assert len(context.head_to_head) == 3

    @pytest.mark.asyncio
    async def test_lists_exclude_target_and_later_matches(self, session, session_factory):
        target = await _seed_target(session)
        await MatchStore(session).upsert_matches(
            [
                make_match(101, "Alpha", "Gamma", KICKOFF - timedelta(days=3), 2, 2),
                make_match(102, "Alpha", "Gamma", KICKOFF + timedelta(days=3), 2, 2),
                make_match(103, "Alpha", "Gamma", KICKOFF - timedelta(days=1)),  # not played
            ]
        )

        context = await HistoryContextBuilder(MatchStore(session)).build(target)

        assert [m.match_id for m in context.home_recent] == [101]
        assert context.head_to_head == []

    @pytest.mark.asyncio
    async def test_unknown_provider_ids_skip_backfill(self, session, session_factory):
        target = await _seed_target(session, home_team_id=None, away_team_id=None)
        provider = FakeProvider(session_factory)

        context = await HistoryContextBuilder(MatchStore(session), provider).build(target)

        assert provider.team_calls == []
        assert provider.pairing_calls == []
        assert context.home_recent == []

    @pytest.mark.asyncio
    async def test_provider_failure_is_not_fatal(self, session, session_factory):
        target = await _seed_target(session)
        provider = FakeProvider(session_factory, fail=True)
        memo = BackfillMemo()

        context = await HistoryContextBuilder(MatchStore(session), provider, memo).build(target)

        assert context.home_recent == []
        assert context.head_to_head == []
        assert len(memo) == 0
        # A failed backfill is tried again on the next request
        await HistoryContextBuilder(MatchStore(session), provider, memo).build(target)
        assert len(provider.team_calls) == 4
        assert len(provider.pairing_calls) == 2

    @pytest.mark.asyncio
    async def test_empty_backfill_retried_on_next_request(self, session, session_factory):
        target = await _seed_target(session)
        provider = FakeProvider(session_factory, empty_first=True)
        memo = BackfillMemo()

        first = await HistoryContextBuilder(MatchStore(session), provider, memo).build(target)
        assert first.home_recent == []
        assert first.head_to_head == []

        second = await HistoryContextBuilder(MatchStore(session), provider, memo).build(target)

        assert provider.team_calls == [
            ("football", 1, 12),
            ("football", 2, 12),
            ("football", 1, 12),
            ("football", 2, 12),
        ]
        assert len(provider.pairing_calls) == 2
        assert len(second.home_recent) == 5
        assert len(second.head_to_head) == 5
        assert team_key("football", 1) in memo
        assert pairing_key("football", 1, 2) in memo

    @pytest.mark.asyncio
    async def test_successful_backfill_not_repeated(self, session, session_factory):
        target = await _seed_target(session)
        # One match per call leaves the lists below the threshold
        provider = FakeProvider(session_factory, matches_per_call=1)
        memo = BackfillMemo()

        await HistoryContextBuilder(MatchStore(session), provider, memo).build(target)
        await HistoryContextBuilder(MatchStore(session), provider, memo).build(target)

        assert len(provider.team_calls) == 2
        assert len(provider.pairing_calls) == 1

    @pytest.mark.asyncio
    async def test_newest_first(self, session, session_factory):
        target = await _seed_target(session)
        await MatchStore(session).upsert_matches(
            [
                make_match(101, "Alpha", "Gamma", KICKOFF - timedelta(days=30), 1, 0),
                make_match(102, "Alpha", "Gamma", KICKOFF - timedelta(days=10), 1, 0),
                make_match(103, "Alpha", "Gamma", KICKOFF - timedelta(days=20), 1, 0),
            ]
        )

        context = await HistoryContextBuilder(MatchStore(session)).build(target)

        assert [m.match_id for m in context.home_recent] == [102, 103, 101]
