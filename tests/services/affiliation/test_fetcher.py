"""
Tests for the affiliation ESI fetcher.

ESI is replaced with an httpx.MockTransport.
"""

from __future__ import annotations

import json

import httpx
import pytest

from groupgate.core.async_client import AsyncESIClient
from groupgate.models import CorporationRecord
from groupgate.services.affiliation import (
    AFFILIATION_BATCH_SIZE,
    AffiliationFetcher,
    ESIEntityResolver,
    refresh_affiliations,
)
from groupgate.services.eligibility import DependencyUnavailableError

CORPORATIONS = {
    98755820: {"name": "Black Rose Inc.", "ceo_id": 2118500443, "alliance_id": 99012770},
    109299958: {"name": "C C P", "ceo_id": 180548812},
}
ALLIANCES = {
    99012770: {"name": "Black Rose", "ticker": "BROSE", "executor_corporation_id": 98755820},
}
AFFILIATIONS = {
    2118500443: {"corporation_id": 98755820, "alliance_id": 99012770},
    2122013871: {"corporation_id": 109299958},
}


class FakeESI:
    """Request handler serving canned ESI responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.fail_status: int | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"error": "ESI is down"})

        path = request.url.path
        if path.endswith("/characters/affiliation/"):
            ids = json.loads(request.content)
            return httpx.Response(
                200,
                json=[
                    {"character_id": cid, **AFFILIATIONS[cid]}
                    for cid in ids
                    if cid in AFFILIATIONS
                ],
            )
        if "/corporations/" in path:
            corporation_id = int(path.rstrip("/").split("/")[-1])
            if corporation_id in CORPORATIONS:
                return httpx.Response(200, json=CORPORATIONS[corporation_id])
            return httpx.Response(404, json={"error": "Corporation not found"})
        if "/alliances/" in path:
            alliance_id = int(path.rstrip("/").split("/")[-1])
            if alliance_id in ALLIANCES:
                return httpx.Response(200, json=ALLIANCES[alliance_id])
            return httpx.Response(404, json={"error": "Alliance not found"})
        return httpx.Response(404, json={"error": "Not found"})

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def esi() -> FakeESI:
    return FakeESI()


class TestAffiliationFetcher:
    """Tests for typed ESI lookups."""

    @pytest.mark.asyncio
    async def test_character_affiliations(self, esi):
        """Test parsing the affiliation response."""
        async with AsyncESIClient(transport=httpx.MockTransport(esi), enable_retry=False) as client:
            result = await AffiliationFetcher(client).fetch_character_affiliations(
                [2122013871, 2118500443, 2118500443]
            )

        by_id = {a.character_id: a for a in result}
        assert by_id[2118500443].alliance_id == 99012770
        assert by_id[2122013871].alliance_id is None
        assert json.loads(esi.requests[0].content) == [2118500443, 2122013871]
        assert esi.requests[0].url.params["datasource"] == "tranquility"

    @pytest.mark.asyncio
    async def test_affiliation_batches(self, esi):
        """Test that large id lists are split into ESI-sized batches."""
        ids = list(range(1, AFFILIATION_BATCH_SIZE * 2 + 2))
        async with AsyncESIClient(transport=httpx.MockTransport(esi), enable_retry=False) as client:
            await AffiliationFetcher(client).fetch_character_affiliations(ids)

        sizes = [len(json.loads(r.content)) for r in esi.requests]
        assert sizes == [AFFILIATION_BATCH_SIZE, AFFILIATION_BATCH_SIZE, 1]

    @pytest.mark.asyncio
    async def test_corporation_and_alliance(self, esi):
        """Test corporation and alliance lookups."""
        async with AsyncESIClient(transport=httpx.MockTransport(esi), enable_retry=False) as client:
            fetcher = AffiliationFetcher(client)
            corporation = await fetcher.fetch_corporation(98755820)
            alliance = await fetcher.fetch_alliance(99012770)
            missing = await fetcher.fetch_corporation(1)

        assert corporation.ceo_character_id == 2118500443
        assert corporation.alliance_id == 99012770
        assert alliance.executor_corporation_id == 98755820
        assert alliance.ticker == "BROSE"
        assert missing is None

    @pytest.mark.asyncio
    async def test_esi_failure_becomes_dependency_error(self, esi):
        """Test that ESI errors surface as DependencyUnavailableError."""
        esi.fail_status = 500
        async with AsyncESIClient(transport=httpx.MockTransport(esi), enable_retry=False) as client:
            with pytest.raises(DependencyUnavailableError) as exc_info:
                await AffiliationFetcher(client).fetch_character_affiliations([2118500443])

        assert exc_info.value.dependency == "ESI"
        assert "ESI is down" in exc_info.value.reason


class TestRefreshAffiliations:
    """Tests for refreshing stored affiliations."""

    @pytest.mark.asyncio
    async def test_refresh_populates_store(self, esi, temp_db):
        """Test that characters, corporations and alliances are stored."""
        async with AsyncESIClient(transport=httpx.MockTransport(esi), enable_retry=False) as client:
            snapshot = await refresh_affiliations(
                temp_db, [2118500443, 2122013871, 404], client=client
            )

        assert snapshot.characters == 2
        assert snapshot.corporations == 2
        assert snapshot.alliances == 1
        assert snapshot.missing_characters == [404]

        [alliance] = await temp_db.bulk_get_alliances([99012770])
        assert alliance.executor_corporation_id == 98755820

    @pytest.mark.asyncio
    async def test_known_corporations_not_refetched(self, esi, temp_db):
        """Test that stored corporations are skipped unless refresh_existing."""
        await temp_db.save_corporations(
            [CorporationRecord(corporation_id=98755820, ceo_character_id=1, alliance_id=99012770)]
        )

        async with AsyncESIClient(transport=httpx.MockTransport(esi), enable_retry=False) as client:
            await refresh_affiliations(temp_db, [2118500443], client=client)
            assert not any("/corporations/" in p for p in esi.paths())

            await refresh_affiliations(temp_db, [2118500443], client=client, refresh_existing=True)

        [corporation] = await temp_db.bulk_get_corporations([98755820])
        assert corporation.ceo_character_id == 2118500443

    @pytest.mark.asyncio
    async def test_empty_input(self, temp_db):
        """Test that nothing is requested for no characters."""
        snapshot = await refresh_affiliations(temp_db, [])

        assert snapshot.characters == 0
        assert snapshot.missing_characters == []


class TestESIEntityResolver:
    """Tests for store-then-ESI existence checks."""

    @pytest.mark.asyncio
    async def test_falls_back_to_esi_and_caches(self, esi, temp_db):
        """Test that ESI hits are cached in the store."""
        async with AsyncESIClient(transport=httpx.MockTransport(esi), enable_retry=False) as client:
            resolver = ESIEntityResolver(temp_db, AffiliationFetcher(client))

            assert await resolver.corporation_exists(98755820) is True
            assert await resolver.corporation_exists(98755820) is True
            assert await resolver.alliance_exists(1) is False

        assert esi.paths().count("/latest/corporations/98755820/") == 1
        assert await temp_db.corporation_exists(98755820)

    @pytest.mark.asyncio
    async def test_groups_checked_in_store(self, esi, temp_db):
        """Test that group checks never reach ESI."""
        async with AsyncESIClient(transport=httpx.MockTransport(esi), enable_retry=False) as client:
            resolver = ESIEntityResolver(temp_db, AffiliationFetcher(client))
            assert await resolver.group_exists(1) is False

        assert esi.requests == []
