"""
Eligibility Collaborator Protocols.

Abstract interfaces for the data sources the eligibility engine reads.
Any object implementing these methods can back an evaluation: the SQLite
group database implements all of them, tests substitute in-memory fakes.

Every method is a batch call: one call per dataset per evaluation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ...models import (
    AllianceRecord,
    CorporationRecord,
    GroupFilters,
    UserAffiliation,
    UserGroups,
)


@runtime_checkable
class GroupStorage(Protocol):
    """Source of group filter definitions."""

    async def get_group_filters(self, group_id: int) -> GroupFilters | None:
        """Return the group's filter definition, or None if the group does not exist."""
        ...


@runtime_checkable
class AffiliationProvider(Protocol):
    """Resolves users to the characters, corporations and alliances they hold."""

    async def bulk_get_user_affiliations(
        self, user_ids: Sequence[int]
    ) -> list[UserAffiliation]:
        """Return one entry per user that owns at least one character."""
        ...


@runtime_checkable
class GroupMembershipProvider(Protocol):
    """Resolves users to the groups they currently belong to."""

    async def bulk_get_user_groups(self, user_ids: Sequence[int]) -> list[UserGroups]:
        """Return one entry per user with at least one membership."""
        ...


@runtime_checkable
class CorporationProvider(Protocol):
    """Corporation records (CEO and alliance)."""

    async def bulk_get_corporations(
        self, corporation_ids: Sequence[int]
    ) -> list[CorporationRecord]:
        ...


@runtime_checkable
class AllianceProvider(Protocol):
    """Alliance records (executor corporation)."""

    async def bulk_get_alliances(self, alliance_ids: Sequence[int]) -> list[AllianceRecord]:
        ...


@runtime_checkable
class EligibilitySources(
    GroupStorage,
    AffiliationProvider,
    GroupMembershipProvider,
    CorporationProvider,
    AllianceProvider,
    Protocol,
):
    """A single object serving every dataset the engine needs."""
