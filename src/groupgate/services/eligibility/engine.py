"""
Eligibility Entry Point.

Answers "which of these users currently qualify for this group?".
Loads the group's filter definition, builds a fresh loader context and
evaluates the filter tree. Nothing is cached between calls, so every
answer reflects the data as it is right now.

Consumers decide what to do with the answer: bulk membership sync,
single-user join checks and application review all go through here.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ...core.config import get_settings
from ...core.logging import get_logger
from .errors import GroupNotFoundError, RuleConfigurationError
from .loader import LoaderContext, load
from .tree import evaluate_filter_tree

if TYPE_CHECKING:
    from ...models import GroupFilters
    from .protocol import EligibilitySources

logger = get_logger(__name__)


class EligibilityEngine:
    """
    Computes eligible members for groups backed by one set of sources.

    The engine holds no per-evaluation state; concurrent calls are safe.
    """

    def __init__(
        self,
        sources: EligibilitySources,
        concurrent_fetch: bool | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            sources: Object implementing every eligibility collaborator protocol
            concurrent_fetch: Fetch independent datasets concurrently
                (default: settings.concurrent_fetch)
        """
        self.sources = sources
        self.concurrent_fetch = (
            concurrent_fetch if concurrent_fetch is not None else get_settings().concurrent_fetch
        )

    def new_context(self, candidate_user_ids: Iterable[int]) -> LoaderContext:
        """Create a fresh loader context for one evaluation."""
        return load(candidate_user_ids, self.sources, concurrent=self.concurrent_fetch)

    async def compute_eligible_members(
        self,
        group_id: int,
        candidate_user_ids: Iterable[int],
    ) -> frozenset[int]:
        """
        Compute which candidates currently qualify for a group.

        Args:
            group_id: Group to evaluate
            candidate_user_ids: Users to test

        Returns:
            The eligible subset of the candidates

        Raises:
            GroupNotFoundError: If the group does not exist
            RuleConfigurationError: If a stored rule is malformed
            DependencyUnavailableError: If a data source fails
        """
        filters = await self.sources.get_group_filters(group_id)
        if filters is None:
            raise GroupNotFoundError(group_id)

        try:
            eligible = await self.evaluate_filters(filters, candidate_user_ids)
        except RuleConfigurationError as e:
            logger.warning("Group %d has a misconfigured filter: %s", group_id, e)
            raise

        logger.debug("Group %d: %d eligible", group_id, len(eligible))
        return eligible

    async def evaluate_filters(
        self,
        filters: GroupFilters,
        candidate_user_ids: Iterable[int],
    ) -> frozenset[int]:
        """
        Evaluate a filter definition that need not be stored.

        Used for previews of unsaved definitions and by
        compute_eligible_members for stored ones.
        """
        ctx = self.new_context(candidate_user_ids)
        return await evaluate_filter_tree(filters, ctx.candidates, ctx)

    async def is_eligible(self, group_id: int, user_id: int) -> bool:
        """Single-user check: True if the user currently qualifies."""
        return user_id in await self.compute_eligible_members(group_id, [user_id])


async def compute_eligible_members(
    sources: EligibilitySources,
    group_id: int,
    candidate_user_ids: Iterable[int],
) -> frozenset[int]:
    """Convenience wrapper around EligibilityEngine.compute_eligible_members."""
    return await EligibilityEngine(sources).compute_eligible_members(group_id, candidate_user_ids)


def compute_eligible_members_sync(
    sources: EligibilitySources,
    group_id: int,
    candidate_user_ids: Iterable[int],
) -> frozenset[int]:
    """Synchronous wrapper for compute_eligible_members."""
    return asyncio.run(compute_eligible_members(sources, group_id, candidate_user_ids))
