"""Fixtures for eligibility engine tests."""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Sequence

import pytest

from groupgate.models import (
    AllianceRecord,
    CorporationRecord,
    GroupFilters,
    UserAffiliation,
    UserGroups,
)
from groupgate.services.eligibility import DependencyUnavailableError


class FakeSources:
    """
    In-memory implementation of every eligibility collaborator protocol.

    Records how often each batch method is called and which ids it was
    asked for. Methods listed in `failing` raise DependencyUnavailableError;
    methods listed in `blocked` wait until cancelled and are then recorded in
    `cancelled`.
    """

    def __init__(self) -> None:
        self.groups: dict[int, GroupFilters] = {}
        self.affiliations: dict[int, UserAffiliation] = {}
        self.memberships: dict[int, set[int]] = {}
        self.corporations: dict[int, CorporationRecord] = {}
        self.alliances: dict[int, AllianceRecord] = {}
        self.calls: Counter[str] = Counter()
        self.requested: dict[str, list[int]] = {}
        self.failing: set[str] = set()
        self.blocked: set[str] = set()
        self.cancelled: list[str] = []

    # Builders

    def add_group(self, group_id: int, filters: GroupFilters) -> FakeSources:
        self.groups[group_id] = filters
        return self

    def add_user(
        self,
        user_id: int,
        characters: Sequence[int] = (),
        corporations: Sequence[int] = (),
        alliances: Sequence[int] = (),
        groups: Sequence[int] = (),
    ) -> FakeSources:
        self.affiliations[user_id] = UserAffiliation(
            user_id=user_id,
            character_ids=frozenset(characters),
            corporation_ids=frozenset(corporations),
            alliance_ids=frozenset(alliances),
        )
        if groups:
            self.memberships[user_id] = set(groups)
        return self

    def add_corporation(
        self, corporation_id: int, ceo: int, alliance_id: int | None = None
    ) -> FakeSources:
        self.corporations[corporation_id] = CorporationRecord(
            corporation_id=corporation_id, ceo_character_id=ceo, alliance_id=alliance_id
        )
        return self

    def add_alliance(self, alliance_id: int, executor: int | None) -> FakeSources:
        self.alliances[alliance_id] = AllianceRecord(
            alliance_id=alliance_id, executor_corporation_id=executor
        )
        return self

    # Protocol methods

    def _record(self, method: str, ids: Sequence[int] = ()) -> None:
        self.calls[method] += 1
        self.requested[method] = list(ids)
        if method in self.failing:
            raise DependencyUnavailableError("fake store", f"{method} failed")

    async def _hold(self, method: str) -> None:
        if method not in self.blocked:
            return
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled.append(method)
            raise

    async def get_group_filters(self, group_id: int) -> GroupFilters | None:
        self._record("get_group_filters")
        return self.groups.get(group_id)

    async def bulk_get_user_affiliations(self, user_ids: Sequence[int]) -> list[UserAffiliation]:
        self._record("bulk_get_user_affiliations", user_ids)
        await self._hold("bulk_get_user_affiliations")
        return [self.affiliations[u] for u in user_ids if u in self.affiliations]

    async def bulk_get_user_groups(self, user_ids: Sequence[int]) -> list[UserGroups]:
        self._record("bulk_get_user_groups", user_ids)
        await self._hold("bulk_get_user_groups")
        return [
            UserGroups(user_id=u, group_ids=frozenset(self.memberships[u]))
            for u in user_ids
            if u in self.memberships
        ]

    async def bulk_get_corporations(self, ids: Sequence[int]) -> list[CorporationRecord]:
        self._record("bulk_get_corporations", ids)
        return [self.corporations[i] for i in ids if i in self.corporations]

    async def bulk_get_alliances(self, ids: Sequence[int]) -> list[AllianceRecord]:
        self._record("bulk_get_alliances", ids)
        return [self.alliances[i] for i in ids if i in self.alliances]


@pytest.fixture
def sources() -> FakeSources:
    """Empty in-memory sources."""
    return FakeSources()


@pytest.fixture
def alliance_sources() -> FakeSources:
    """
    Sources modelling two alliances.

    - user 1: CEO of corp 98755820, executor of alliance 99012770
    - user 2: member of corp 98755820 (alliance 99012770), in group 10
    - user 3: CEO of corp 98000003, alliance 99012770 but not executor
    - user 4: member of corp 98000004, alliance 55555555
    - user 5: no characters at all
    """
    return (
        FakeSources()
        .add_user(1, characters=[101], corporations=[98755820], alliances=[99012770])
        .add_user(2, characters=[102], corporations=[98755820], alliances=[99012770], groups=[10])
        .add_user(3, characters=[103], corporations=[98000003], alliances=[99012770])
        .add_user(4, characters=[104], corporations=[98000004], alliances=[55555555], groups=[10])
        .add_corporation(98755820, ceo=101, alliance_id=99012770)
        .add_corporation(98000003, ceo=103, alliance_id=99012770)
        .add_corporation(98000004, ceo=999, alliance_id=55555555)
        .add_alliance(99012770, executor=98755820)
        .add_alliance(55555555, executor=98000005)
    )
