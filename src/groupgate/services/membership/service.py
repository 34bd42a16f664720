"""
Membership Service.

Admission workflows built on the eligibility engine:

- Bulk add: eligible candidates are inserted, the rest ignored
- Resync: members who no longer qualify are removed
- Join/leave: direct for Open/Auto groups, by application for Apply/Hidden
- Application review: accepting re-checks eligibility at decision time

Every decision asks the engine afresh; nothing is cached between calls.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ...core.logging import get_logger
from ...models import ApplicationStatus, ApplicationType, Group, GroupApplication
from ..eligibility import EligibilityEngine, GroupNotFoundError
from .errors import (
    AlreadyMemberError,
    ApplicationClosedError,
    ApplicationNotFoundError,
    DuplicateApplicationError,
    NotEligibleError,
    NotMemberError,
)

if TYPE_CHECKING:
    from ..store import GroupDatabase

logger = get_logger(__name__)


@dataclass
class SyncResult:
    """Outcome of resyncing one group's membership."""

    group_id: int
    checked: int = 0
    retained: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "group_id": self.group_id,
            "checked": self.checked,
            "retained": sorted(self.retained),
            "removed": sorted(self.removed),
        }


class MembershipService:
    """Group admission and removal driven by eligibility."""

    def __init__(self, store: GroupDatabase, engine: EligibilityEngine | None = None):
        """
        Initialize the service.

        Args:
            store: Group database (membership and application storage)
            engine: Eligibility engine (default: one backed by the same store)
        """
        self.store = store
        self.engine = engine or EligibilityEngine(store)

    async def _require_group(self, group_id: int) -> Group:
        group = await self.store.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    # =========================================================================
    # Bulk Operations
    # =========================================================================

    async def add_group_members(self, group_id: int, user_ids: Iterable[int]) -> frozenset[int]:
        """
        Add the eligible subset of user_ids to a group.

        Ineligible users and existing members are skipped silently.

        Returns:
            User ids that became members
        """
        await self._require_group(group_id)
        eligible = await self.engine.compute_eligible_members(group_id, user_ids)
        inserted = await self.store.add_group_members(group_id, sorted(eligible))

        logger.info(
            "Group %d: %d eligible, %d newly added", group_id, len(eligible), len(inserted)
        )
        return inserted

    async def sync_group_members(self, group_id: int) -> SyncResult:
        """Remove current members who no longer qualify."""
        await self._require_group(group_id)
        members = await self.store.get_group_member_ids(group_id)
        result = SyncResult(group_id=group_id, checked=len(members))
        if not members:
            return result

        eligible = await self.engine.compute_eligible_members(group_id, members)
        stale = sorted(members - eligible)
        await self.store.remove_group_members(group_id, stale)

        result.retained = sorted(eligible)
        result.removed = stale
        if stale:
            logger.info("Group %d: removed %d ineligible members", group_id, len(stale))
        return result

    # =========================================================================
    # Join and Leave
    # =========================================================================

    async def join_group(
        self,
        group_id: int,
        user_id: int,
        request_message: str | None = None,
    ) -> GroupApplication | None:
        """
        Request to join a group.

        Open and Auto groups admit an eligible user immediately and return
        None. Apply and Hidden groups record an outstanding Join application
        and return it.

        Raises:
            GroupNotFoundError: If the group does not exist
            NotEligibleError: If the user does not qualify
            AlreadyMemberError: If the user already belongs to an Open/Auto group
            DuplicateApplicationError: If a Join application is already outstanding
        """
        group = await self._require_group(group_id)

        if not await self.engine.is_eligible(group_id, user_id):
            raise NotEligibleError(group_id, user_id)

        if not group.group_type.requires_application:
            inserted = await self.store.add_group_members(group_id, [user_id])
            if not inserted:
                raise AlreadyMemberError(group_id, user_id)
            logger.info("User %d joined group %d", user_id, group_id)
            return None

        return await self._open_application(group_id, user_id, ApplicationType.JOIN, request_message)

    async def leave_group(
        self,
        group_id: int,
        user_id: int,
        request_message: str | None = None,
    ) -> GroupApplication | None:
        """
        Leave a group, or apply to leave when the group requires it.

        Raises:
            GroupNotFoundError: If the group does not exist
            NotMemberError: If the user is not a member
            DuplicateApplicationError: If a Leave application is already outstanding
        """
        group = await self._require_group(group_id)

        if not await self.store.is_member(group_id, user_id):
            raise NotMemberError(group_id, user_id)

        if group.leave_applications:
            return await self._open_application(
                group_id, user_id, ApplicationType.LEAVE, request_message
            )

        await self.store.remove_group_members(group_id, [user_id])
        logger.info("User %d left group %d", user_id, group_id)
        return None

    async def _open_application(
        self,
        group_id: int,
        user_id: int,
        request_type: ApplicationType,
        request_message: str | None,
    ) -> GroupApplication:
        existing = await self.store.find_outstanding_application(group_id, user_id, request_type)
        if existing is not None:
            raise DuplicateApplicationError(group_id, user_id, existing.id)

        application = await self.store.create_application(
            group_id, user_id, request_type, request_message
        )
        logger.info(
            "User %d applied to %s group %d (application %d)",
            user_id,
            request_type.value.lower(),
            group_id,
            application.id,
        )
        return application

    # =========================================================================
    # Application Review
    # =========================================================================

    async def respond_to_application(
        self,
        application_id: int,
        accept: bool,
        responder_id: int | None = None,
        response_message: str | None = None,
    ) -> GroupApplication:
        """
        Accept or reject an outstanding application.

        Accepting a Join re-checks eligibility; if the user no longer
        qualifies the application stays outstanding and NotEligibleError
        is raised.

        Returns:
            The application as closed
        """
        application = await self.store.get_application(application_id)
        if application is None:
            raise ApplicationNotFoundError(application_id)
        if not application.is_outstanding:
            raise ApplicationClosedError(application_id, application.status.value)

        group_id = application.group_id
        user_id = application.user_id

        if accept:
            if application.request_type == ApplicationType.JOIN:
                if not await self.engine.is_eligible(group_id, user_id):
                    raise NotEligibleError(group_id, user_id)
                await self.store.add_group_members(group_id, [user_id])
            else:
                await self.store.remove_group_members(group_id, [user_id])

        status = ApplicationStatus.ACCEPTED if accept else ApplicationStatus.REJECTED
        await self.store.close_application(application_id, status, responder_id, response_message)

        logger.info("Application %d %s", application_id, status.value.lower())
        return await self.store.get_application(application_id)
