"""
Affiliation Batch Loader.

Holds the per-evaluation view of the slow external datasets:

- affiliations: user -> characters, corporations, alliances
- user_groups: user -> groups the user belongs to
- corporations: records for every corporation any candidate belongs to
- alliances: records for every alliance any loaded corporation belongs to

Each dataset is fetched on first demand and memoized for the rest of the
evaluation, so a group with fifty rules still issues at most one batch call
per dataset. A context is never shared between evaluations.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

from ...core.logging import get_logger
from ...models import AllianceRecord, CorporationRecord, UserAffiliation
from .errors import DependencyUnavailableError

if TYPE_CHECKING:
    from .protocol import (
        AffiliationProvider,
        AllianceProvider,
        CorporationProvider,
        EligibilitySources,
        GroupMembershipProvider,
    )

logger = get_logger(__name__)

T = TypeVar("T")


class Dataset(str, Enum):
    """External datasets an evaluation may need."""

    AFFILIATIONS = "affiliations"
    USER_GROUPS = "user_groups"
    CORPORATIONS = "corporations"
    ALLIANCES = "alliances"


class _Memo(Generic[T]):
    """
    Fetch-once slot for one dataset.

    `loaded` is tracked explicitly so an empty result counts as loaded.
    The lock keeps concurrent first accesses from issuing duplicate fetches.
    """

    def __init__(self) -> None:
        self.loaded = False
        self.value: T | None = None
        self._lock = asyncio.Lock()

    async def get(self, fetch: Callable[[], Awaitable[T]]) -> T:
        if not self.loaded:
            async with self._lock:
                if not self.loaded:
                    self.value = await fetch()
                    self.loaded = True
        return self.value  # type: ignore[return-value]


class LoaderContext:
    """
    Lazily populated datasets for one evaluation.

    Accessors return maps keyed by id. Affiliation and group maps contain an
    entry for every candidate; candidates unknown to the provider map to
    empty sets.
    """

    def __init__(
        self,
        candidate_user_ids: Iterable[int],
        *,
        affiliations: AffiliationProvider,
        memberships: GroupMembershipProvider,
        corporations: CorporationProvider,
        alliances: AllianceProvider,
        concurrent: bool = True,
    ) -> None:
        self.candidates: frozenset[int] = frozenset(candidate_user_ids)
        self.concurrent = concurrent
        self._affiliation_provider = affiliations
        self._membership_provider = memberships
        self._corporation_provider = corporations
        self._alliance_provider = alliances

        self._affiliations: _Memo[dict[int, UserAffiliation]] = _Memo()
        self._user_groups: _Memo[dict[int, frozenset[int]]] = _Memo()
        self._corporations: _Memo[dict[int, CorporationRecord]] = _Memo()
        self._alliances: _Memo[dict[int, AllianceRecord]] = _Memo()

        self.fetch_counts: dict[Dataset, int] = {dataset: 0 for dataset in Dataset}

    # =========================================================================
    # Dataset Accessors
    # =========================================================================

    async def affiliations(self) -> dict[int, UserAffiliation]:
        """User id -> affiliation for every candidate."""
        return await self._affiliations.get(self._fetch_affiliations)

    async def user_groups(self) -> dict[int, frozenset[int]]:
        """User id -> group ids for every candidate."""
        return await self._user_groups.get(self._fetch_user_groups)

    async def corporations(self) -> dict[int, CorporationRecord]:
        """Corporation id -> record for corporations referenced by candidates."""
        return await self._corporations.get(self._fetch_corporations)

    async def alliances(self) -> dict[int, AllianceRecord]:
        """Alliance id -> record for alliances referenced by loaded corporations."""
        return await self._alliances.get(self._fetch_alliances)

    async def prefetch(self, datasets: Iterable[Dataset]) -> None:
        """
        Load the given datasets up front.

        Independent datasets are fetched concurrently when enabled.
        Corporations still wait for affiliations, and alliances for
        corporations, because their ids come from those results. If one
        fetch fails the others are cancelled before the error propagates.
        """
        accessors = {
            Dataset.AFFILIATIONS: self.affiliations,
            Dataset.USER_GROUPS: self.user_groups,
            Dataset.CORPORATIONS: self.corporations,
            Dataset.ALLIANCES: self.alliances,
        }
        requested = set(datasets)
        wanted = [accessors[dataset] for dataset in Dataset if dataset in requested]

        if not self.concurrent:
            for accessor in wanted:
                await accessor()
            return

        tasks = [asyncio.ensure_future(accessor()) for accessor in wanted]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    # =========================================================================
    # Fetchers
    # =========================================================================

    async def _call(self, dataset: Dataset, call: Awaitable[T]) -> T:
        self.fetch_counts[dataset] += 1
        try:
            return await call
        except DependencyUnavailableError as e:
            logger.warning("Fetching %s failed: %s", dataset.value, e.reason)
            raise

    async def _fetch_affiliations(self) -> dict[int, UserAffiliation]:
        result = {user_id: UserAffiliation(user_id=user_id) for user_id in self.candidates}
        if not self.candidates:
            return result

        rows = await self._call(
            Dataset.AFFILIATIONS,
            self._affiliation_provider.bulk_get_user_affiliations(sorted(self.candidates)),
        )
        for row in rows:
            if row.user_id in self.candidates:
                result[row.user_id] = row

        logger.debug("Loaded affiliations for %d of %d candidates", len(rows), len(result))
        return result

    async def _fetch_user_groups(self) -> dict[int, frozenset[int]]:
        result: dict[int, frozenset[int]] = {user_id: frozenset() for user_id in self.candidates}
        if not self.candidates:
            return result

        rows = await self._call(
            Dataset.USER_GROUPS,
            self._membership_provider.bulk_get_user_groups(sorted(self.candidates)),
        )
        for row in rows:
            if row.user_id in self.candidates:
                result[row.user_id] = frozenset(row.group_ids)

        logger.debug("Loaded group memberships for %d candidates", len(rows))
        return result

    async def _fetch_corporations(self) -> dict[int, CorporationRecord]:
        affiliations = await self.affiliations()
        corporation_ids = sorted(
            {
                corp_id
                for affiliation in affiliations.values()
                for corp_id in affiliation.corporation_ids
            }
        )
        if not corporation_ids:
            return {}

        rows = await self._call(
            Dataset.CORPORATIONS,
            self._corporation_provider.bulk_get_corporations(corporation_ids),
        )
        logger.debug("Loaded %d corporations", len(rows))
        return {row.corporation_id: row for row in rows}

    async def _fetch_alliances(self) -> dict[int, AllianceRecord]:
        corporations = await self.corporations()
        alliance_ids = sorted(
            {corp.alliance_id for corp in corporations.values() if corp.alliance_id is not None}
        )
        if not alliance_ids:
            return {}

        rows = await self._call(
            Dataset.ALLIANCES,
            self._alliance_provider.bulk_get_alliances(alliance_ids),
        )
        logger.debug("Loaded %d alliances", len(rows))
        return {row.alliance_id: row for row in rows}


def load(
    candidate_user_ids: Iterable[int],
    sources: EligibilitySources,
    concurrent: bool = True,
) -> LoaderContext:
    """
    Create a loader context backed by a single source object.

    Nothing is fetched until a dataset is first requested.
    """
    return LoaderContext(
        candidate_user_ids,
        affiliations=sources,
        memberships=sources,
        corporations=sources,
        alliances=sources,
        concurrent=concurrent,
    )
