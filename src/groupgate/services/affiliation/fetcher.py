"""
Affiliation ESI Fetcher.

Refreshes the cached character, corporation and alliance data that
eligibility decisions are made from:
- POST /characters/affiliation/ - Character corporation/alliance (public, no auth)
- GET /corporations/{id}/ - Corporation info (CEO, alliance)
- GET /alliances/{id}/ - Alliance info (executor corporation)

The eligibility engine never calls ESI itself; run a refresh before
evaluating when fresh affiliations matter.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ...core.async_client import AsyncESIClient, AsyncESIError
from ...core.logging import get_logger
from ...models import AffiliationSnapshot, AllianceRecord, CharacterAffiliation, CorporationRecord
from ..eligibility.errors import DependencyUnavailableError

if TYPE_CHECKING:
    from ..store import GroupDatabase

logger = get_logger(__name__)

# ESI endpoints
AFFILIATION_ENDPOINT = "/characters/affiliation/"
CORPORATION_ENDPOINT = "/corporations/{corporation_id}/"
ALLIANCE_ENDPOINT = "/alliances/{alliance_id}/"

# ESI accepts at most 1000 character ids per affiliation request
AFFILIATION_BATCH_SIZE = 1000
# Concurrent corporation/alliance lookups per batch
ENTITY_BATCH_SIZE = 50

DEPENDENCY_NAME = "ESI"


def _unavailable(what: str, error: AsyncESIError) -> DependencyUnavailableError:
    logger.warning("ESI %s failed: %s", what, error.message)
    return DependencyUnavailableError(DEPENDENCY_NAME, f"{what}: {error.message}")


class AffiliationFetcher:
    """
    Typed ESI lookups for affiliation data.

    Wraps an entered AsyncESIClient. ESI failures surface as
    DependencyUnavailableError; unknown corporations and alliances
    return None.
    """

    def __init__(self, client: AsyncESIClient):
        self.client = client

    async def fetch_character_affiliations(
        self, character_ids: Sequence[int]
    ) -> list[CharacterAffiliation]:
        """
        Fetch current affiliations for characters.

        ESI POST /characters/affiliation/ returns a list of:
        {
            "character_id": int,
            "corporation_id": int,
            "alliance_id": int (optional),
            "faction_id": int (optional)
        }
        """
        unique_ids = sorted(set(character_ids))
        results: list[CharacterAffiliation] = []

        for i in range(0, len(unique_ids), AFFILIATION_BATCH_SIZE):
            batch = unique_ids[i : i + AFFILIATION_BATCH_SIZE]
            try:
                data = await self.client.post(AFFILIATION_ENDPOINT, batch)
            except AsyncESIError as e:
                raise _unavailable("character affiliation", e) from e

            for entry in data or []:
                results.append(
                    CharacterAffiliation(
                        character_id=entry["character_id"],
                        corporation_id=entry["corporation_id"],
                        alliance_id=entry.get("alliance_id"),
                    )
                )

        logger.info("Fetched %d character affiliations", len(results))
        return results

    async def fetch_corporation(self, corporation_id: int) -> CorporationRecord | None:
        """
        Fetch corporation information.

        ESI GET /corporations/{corporation_id}/ returns (subset):
        {
            "name": str,
            "ticker": str,
            "ceo_id": int,
            "alliance_id": int (optional),
            "member_count": int
        }
        """
        endpoint = CORPORATION_ENDPOINT.format(corporation_id=corporation_id)
        try:
            data = await self.client.get_safe(endpoint)
        except AsyncESIError as e:
            raise _unavailable(f"corporation {corporation_id}", e) from e

        if data is None:
            logger.warning("Corporation %d not found", corporation_id)
            return None

        return CorporationRecord(
            corporation_id=corporation_id,
            ceo_character_id=data["ceo_id"],
            alliance_id=data.get("alliance_id"),
            name=data.get("name", ""),
        )

    async def fetch_alliance(self, alliance_id: int) -> AllianceRecord | None:
        """
        Fetch alliance information.

        ESI GET /alliances/{alliance_id}/ returns (subset):
        {
            "name": str,
            "ticker": str,
            "executor_corporation_id": int (optional)
        }
        """
        endpoint = ALLIANCE_ENDPOINT.format(alliance_id=alliance_id)
        try:
            data = await self.client.get_safe(endpoint)
        except AsyncESIError as e:
            raise _unavailable(f"alliance {alliance_id}", e) from e

        if data is None:
            logger.warning("Alliance %d not found", alliance_id)
            return None

        return AllianceRecord(
            alliance_id=alliance_id,
            executor_corporation_id=data.get("executor_corporation_id"),
            name=data.get("name", ""),
            ticker=data.get("ticker", ""),
        )

    async def fetch_corporations(self, corporation_ids: Sequence[int]) -> list[CorporationRecord]:
        """Fetch multiple corporations, skipping unknown ids."""
        return await self._fetch_batched(corporation_ids, self.fetch_corporation)

    async def fetch_alliances(self, alliance_ids: Sequence[int]) -> list[AllianceRecord]:
        """Fetch multiple alliances, skipping unknown ids."""
        return await self._fetch_batched(alliance_ids, self.fetch_alliance)

    @staticmethod
    async def _fetch_batched(ids: Sequence[int], fetch: Any) -> list[Any]:
        unique_ids = sorted(set(ids))
        results = []
        for i in range(0, len(unique_ids), ENTITY_BATCH_SIZE):
            batch = unique_ids[i : i + ENTITY_BATCH_SIZE]
            records = await asyncio.gather(*(fetch(entity_id) for entity_id in batch))
            results.extend(record for record in records if record is not None)
        return results


async def _refresh(
    store: GroupDatabase,
    fetcher: AffiliationFetcher,
    character_ids: Sequence[int],
    refresh_existing: bool,
) -> AffiliationSnapshot:
    snapshot = AffiliationSnapshot()

    affiliations = await fetcher.fetch_character_affiliations(character_ids)
    snapshot.characters = await store.save_character_affiliations(affiliations)

    returned = {a.character_id for a in affiliations}
    snapshot.missing_characters = sorted(set(character_ids) - returned)
    if snapshot.missing_characters:
        logger.warning("ESI returned no affiliation for %d characters", len(snapshot.missing_characters))

    corporation_ids = sorted({a.corporation_id for a in affiliations})
    if not refresh_existing:
        known = {c.corporation_id for c in await store.bulk_get_corporations(corporation_ids)}
        corporation_ids = [cid for cid in corporation_ids if cid not in known]
    corporations = await fetcher.fetch_corporations(corporation_ids)
    snapshot.corporations = await store.save_corporations(corporations)

    alliance_ids = {a.alliance_id for a in affiliations if a.alliance_id is not None}
    alliance_ids.update(c.alliance_id for c in corporations if c.alliance_id is not None)
    alliance_ids_list = sorted(alliance_ids)
    if not refresh_existing:
        known = {a.alliance_id for a in await store.bulk_get_alliances(alliance_ids_list)}
        alliance_ids_list = [aid for aid in alliance_ids_list if aid not in known]
    alliances = await fetcher.fetch_alliances(alliance_ids_list)
    snapshot.alliances = await store.save_alliances(alliances)

    return snapshot


async def refresh_affiliations(
    store: GroupDatabase,
    character_ids: Sequence[int],
    client: AsyncESIClient | None = None,
    refresh_existing: bool = False,
) -> AffiliationSnapshot:
    """
    Update stored affiliations for characters from ESI.

    Character affiliations are always rewritten. Corporations and alliances
    they point at are fetched when not yet stored, or always when
    refresh_existing is set (picks up CEO and executor changes).

    Args:
        store: Group database to update
        character_ids: Characters to refresh
        client: Entered AsyncESIClient (default: a new one for this call)
        refresh_existing: Re-fetch corporations and alliances already stored

    Returns:
        Counts of records written and characters ESI did not return

    Raises:
        DependencyUnavailableError: If ESI or the database fails
    """
    if not character_ids:
        return AffiliationSnapshot()

    if client is not None:
        return await _refresh(store, AffiliationFetcher(client), character_ids, refresh_existing)

    async with AsyncESIClient() as owned_client:
        return await _refresh(
            store, AffiliationFetcher(owned_client), character_ids, refresh_existing
        )


class ESIEntityResolver:
    """
    Existence checks for filter validation.

    Looks in the store first; unknown corporations and alliances are
    looked up on ESI and cached in the store when found.
    """

    def __init__(self, store: GroupDatabase, fetcher: AffiliationFetcher):
        self.store = store
        self.fetcher = fetcher

    async def group_exists(self, group_id: int) -> bool:
        return await self.store.group_exists(group_id)

    async def corporation_exists(self, corporation_id: int) -> bool:
        if await self.store.corporation_exists(corporation_id):
            return True
        record = await self.fetcher.fetch_corporation(corporation_id)
        if record is None:
            return False
        await self.store.save_corporations([record])
        return True

    async def alliance_exists(self, alliance_id: int) -> bool:
        if await self.store.alliance_exists(alliance_id):
            return True
        record = await self.fetcher.fetch_alliance(alliance_id)
        if record is None:
            return False
        await self.store.save_alliances([record])
        return True
