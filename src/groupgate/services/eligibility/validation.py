"""
Filter Definition Validation.

Checks a definition before it is saved, so stored rules always evaluate:

1. Criteria type is Is or IsNot (GreaterThan/LessThan are reserved)
2. Group, Corporation and Alliance values are integer ids
3. Role values are CEO or Executor
4. Referenced groups, corporations and alliances exist

Only the first problem is reported, as a RuleConfigurationError naming
the rule's position in the definition.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ...models import FilterCriteria, FilterRule, GroupFilters
from .criteria import compile_rule
from .errors import RuleConfigurationError


@runtime_checkable
class EntityResolver(Protocol):
    """Existence checks for ids referenced by filter rules."""

    async def group_exists(self, group_id: int) -> bool: ...

    async def corporation_exists(self, corporation_id: int) -> bool: ...

    async def alliance_exists(self, alliance_id: int) -> bool: ...


async def validate_filter_rules(
    rules: Sequence[FilterRule],
    resolver: EntityResolver,
    prefix: str = "filter_rules",
) -> None:
    """
    Validate a flat list of rules.

    Args:
        rules: Rules to check
        resolver: Existence checks for referenced entities
        prefix: Position prefix used in error messages

    Raises:
        RuleConfigurationError: On the first invalid rule
    """
    for index, rule in enumerate(rules):
        position = f"{prefix}[{index}]"
        compiled = compile_rule(rule, position)

        if rule.criteria == FilterCriteria.GROUP:
            if not await resolver.group_exists(compiled.value):
                raise RuleConfigurationError(rule.id, f"Group not found: {compiled.value}", position)
        elif rule.criteria == FilterCriteria.CORPORATION:
            if not await resolver.corporation_exists(compiled.value):
                raise RuleConfigurationError(
                    rule.id, f"Corporation not found: {compiled.value}", position
                )
        elif rule.criteria == FilterCriteria.ALLIANCE:
            if not await resolver.alliance_exists(compiled.value):
                raise RuleConfigurationError(
                    rule.id, f"Alliance not found: {compiled.value}", position
                )


async def validate_group_filters(filters: GroupFilters, resolver: EntityResolver) -> None:
    """
    Validate a whole definition: direct rules, then each filter group.

    Raises:
        RuleConfigurationError: On the first invalid rule
    """
    await validate_filter_rules(filters.filter_rules, resolver)

    for index, filter_group in enumerate(filters.filter_groups):
        await validate_filter_rules(
            filter_group.rules, resolver, prefix=f"filter_groups[{index}].rules"
        )
