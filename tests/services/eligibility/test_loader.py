"""
Tests for the per-evaluation loader context.
"""

from __future__ import annotations

import asyncio

import pytest

from groupgate.services.eligibility import Dataset, DependencyUnavailableError, load


class TracingStore:
    """Wraps a store and records when each batch call starts and ends."""

    def __init__(self, store) -> None:
        self.store = store
        self.events: list[str] = []

    async def _trace(self, name, call):
        self.events.append(f"{name} start")
        result = await call
        self.events.append(f"{name} end")
        return result

    async def bulk_get_user_affiliations(self, user_ids):
        return await self._trace("affiliations", self.store.bulk_get_user_affiliations(user_ids))

    async def bulk_get_user_groups(self, user_ids):
        return await self._trace("user_groups", self.store.bulk_get_user_groups(user_ids))


class TestMemoization:
    """Tests for fetch-once behaviour."""

    @pytest.mark.asyncio
    async def test_affiliations_fetched_once(self, alliance_sources):
        """Test that repeated access issues one batch call."""
        ctx = load([1, 2], alliance_sources)

        first = await ctx.affiliations()
        second = await ctx.affiliations()

        assert first is second
        assert alliance_sources.calls["bulk_get_user_affiliations"] == 1
        assert ctx.fetch_counts[Dataset.AFFILIATIONS] == 1

    @pytest.mark.asyncio
    async def test_empty_result_is_not_refetched(self, sources):
        """Test that a legitimately empty dataset counts as loaded."""
        ctx = load([1, 2], sources)

        await ctx.user_groups()
        await ctx.user_groups()

        assert sources.calls["bulk_get_user_groups"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_access_fetches_once(self, alliance_sources):
        """Test that concurrent accessors share one fetch."""
        ctx = load([1, 2, 3], alliance_sources)

        await asyncio.gather(ctx.corporations(), ctx.corporations(), ctx.alliances())

        assert alliance_sources.calls["bulk_get_user_affiliations"] == 1
        assert alliance_sources.calls["bulk_get_corporations"] == 1
        assert alliance_sources.calls["bulk_get_alliances"] == 1

    @pytest.mark.asyncio
    async def test_contexts_are_independent(self, alliance_sources):
        """Test that a new context fetches again."""
        await load([1], alliance_sources).affiliations()
        await load([1], alliance_sources).affiliations()

        assert alliance_sources.calls["bulk_get_user_affiliations"] == 2


class TestDatasetContents:
    """Tests for dataset shapes."""

    @pytest.mark.asyncio
    async def test_every_candidate_has_an_entry(self, alliance_sources):
        """Test that unknown candidates map to empty affiliations and groups."""
        ctx = load([1, 5, 77], alliance_sources)

        affiliations = await ctx.affiliations()
        groups = await ctx.user_groups()

        assert set(affiliations) == {1, 5, 77}
        assert affiliations[77].character_ids == frozenset()
        assert set(groups) == {1, 5, 77}
        assert groups[1] == frozenset()

    @pytest.mark.asyncio
    async def test_corporations_follow_affiliations(self, alliance_sources):
        """Test that corporation ids come from the candidates' affiliations."""
        ctx = load([1, 4], alliance_sources)

        corporations = await ctx.corporations()

        assert set(corporations) == {98755820, 98000004}
        assert sorted(alliance_sources.requested["bulk_get_corporations"]) == [
            98000004,
            98755820,
        ]

    @pytest.mark.asyncio
    async def test_alliances_follow_corporations(self, alliance_sources):
        """Test that alliance ids come from the loaded corporations."""
        ctx = load([1], alliance_sources)

        alliances = await ctx.alliances()

        assert set(alliances) == {99012770}
        assert alliance_sources.requested["bulk_get_alliances"] == [99012770]

    @pytest.mark.asyncio
    async def test_empty_candidates_skip_provider_calls(self, alliance_sources):
        """Test that nothing is requested for an empty candidate set."""
        ctx = load([], alliance_sources)

        assert await ctx.affiliations() == {}
        assert await ctx.alliances() == {}
        assert sum(alliance_sources.calls.values()) == 0
        assert all(count == 0 for count in ctx.fetch_counts.values())


class TestPrefetch:
    """Tests for up-front loading."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrent", [True, False])
    async def test_prefetch_loads_requested(self, alliance_sources, concurrent):
        """Test that prefetch loads exactly the requested datasets."""
        ctx = load([1, 2], alliance_sources, concurrent=concurrent)

        await ctx.prefetch({Dataset.USER_GROUPS, Dataset.CORPORATIONS})

        assert alliance_sources.calls["bulk_get_user_groups"] == 1
        assert alliance_sources.calls["bulk_get_user_affiliations"] == 1
        assert alliance_sources.calls["bulk_get_corporations"] == 1
        assert alliance_sources.calls["bulk_get_alliances"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrent", [True, False])
    async def test_prefetch_accepts_generator(self, alliance_sources, concurrent):
        """Test that a one-shot iterable of datasets is fully honoured."""
        ctx = load([1, 2], alliance_sources, concurrent=concurrent)

        await ctx.prefetch(d for d in (Dataset.USER_GROUPS, Dataset.AFFILIATIONS))

        assert alliance_sources.calls["bulk_get_user_groups"] == 1
        assert alliance_sources.calls["bulk_get_user_affiliations"] == 1

    @pytest.mark.asyncio
    async def test_store_fetches_overlap(self, seeded_db):
        """Test that gathered store fetches are in flight together."""
        store = TracingStore(seeded_db)
        ctx = load([1, 2, 3], store, concurrent=True)

        await ctx.prefetch([Dataset.AFFILIATIONS, Dataset.USER_GROUPS])

        assert store.events[:2] == ["affiliations start", "user_groups start"]
        assert set(store.events[2:]) == {"affiliations end", "user_groups end"}
        assert set(await ctx.affiliations()) == {1, 2, 3}


class TestFailures:
    """Tests for dependency failures."""

    @pytest.mark.asyncio
    async def test_dependency_error_propagates(self, alliance_sources):
        """Test that provider failures surface unchanged."""
        alliance_sources.failing.add("bulk_get_user_affiliations")
        ctx = load([1], alliance_sources)

        with pytest.raises(DependencyUnavailableError, match="fake store unavailable"):
            await ctx.corporations()

        assert alliance_sources.calls["bulk_get_corporations"] == 0

    @pytest.mark.asyncio
    async def test_prefetch_failure_cancels_other_fetches(self, alliance_sources):
        """Test that a failed fetch cancels the fetches still running."""
        alliance_sources.blocked.add("bulk_get_user_affiliations")
        alliance_sources.failing.add("bulk_get_user_groups")
        ctx = load([1, 2], alliance_sources, concurrent=True)

        with pytest.raises(DependencyUnavailableError):
            await ctx.prefetch([Dataset.AFFILIATIONS, Dataset.USER_GROUPS])

        assert alliance_sources.cancelled == ["bulk_get_user_affiliations"]
        assert ctx._affiliations.loaded is False
