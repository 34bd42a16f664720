"""
Criteria Resolvers.

Turns one filter rule into a per-candidate match map. Rules are compiled
first: `criteria_value` is parsed into its typed form and reserved criteria
types are rejected, so a malformed rule surfaces as RuleConfigurationError
before any data is fetched.

Resolvers report the raw match only. Is/IsNot polarity is applied by the
rule set accumulation.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from ...models import FilterCriteria, FilterCriteriaType, FilterRule, LeadershipRole
from .errors import RuleConfigurationError
from .loader import Dataset, LoaderContext

_INTEGER_ID = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class CompiledRule:
    """A filter rule whose value has been parsed and checked."""

    rule: FilterRule
    value: int | LeadershipRole

    @property
    def rule_id(self) -> int | None:
        return self.rule.id

    @property
    def criteria(self) -> FilterCriteria:
        return self.rule.criteria

    @property
    def criteria_type(self) -> FilterCriteriaType:
        return self.rule.criteria_type


def parse_criteria_value(rule: FilterRule, position: str | None = None) -> int | LeadershipRole:
    """
    Parse a rule's string value into the type its criteria demands.

    Raises:
        RuleConfigurationError: If the value does not parse
    """
    value = rule.criteria_value

    if rule.criteria == FilterCriteria.ROLE:
        try:
            return LeadershipRole(value)
        except ValueError:
            raise RuleConfigurationError(
                rule.id,
                f"Role must be set to either CEO or Executor, got {value!r}",
                position,
            ) from None

    if not _INTEGER_ID.fullmatch(value):
        raise RuleConfigurationError(
            rule.id,
            f"Invalid {rule.criteria.value.lower()} id: {value!r}",
            position,
        )
    return int(value)


def compile_rule(rule: FilterRule, position: str | None = None) -> CompiledRule:
    """
    Validate a rule for evaluation.

    Raises:
        RuleConfigurationError: For reserved criteria types or unparsable values
    """
    if not rule.criteria_type.is_evaluable:
        raise RuleConfigurationError(
            rule.id,
            f"Criteria type {rule.criteria_type.value} is not supported, "
            "must be either Is or IsNot",
            position,
        )
    return CompiledRule(rule=rule, value=parse_criteria_value(rule, position))


def required_datasets(rules: Iterable[CompiledRule]) -> set[Dataset]:
    """Datasets the given rules will read during resolution."""
    datasets: set[Dataset] = set()
    for compiled in rules:
        if compiled.criteria == FilterCriteria.GROUP:
            datasets.add(Dataset.USER_GROUPS)
        elif compiled.criteria in (FilterCriteria.CORPORATION, FilterCriteria.ALLIANCE):
            datasets.add(Dataset.AFFILIATIONS)
        elif compiled.value == LeadershipRole.EXECUTOR:
            datasets.update((Dataset.AFFILIATIONS, Dataset.CORPORATIONS, Dataset.ALLIANCES))
        else:
            datasets.update((Dataset.AFFILIATIONS, Dataset.CORPORATIONS))
    return datasets


# =============================================================================
# Resolvers
# =============================================================================


async def resolve_group(
    rule: CompiledRule, candidates: frozenset[int], ctx: LoaderContext
) -> dict[int, bool]:
    """Match candidates that already belong to the referenced group."""
    user_groups = await ctx.user_groups()
    return {user_id: rule.value in user_groups.get(user_id, ()) for user_id in candidates}


async def resolve_corporation(
    rule: CompiledRule, candidates: frozenset[int], ctx: LoaderContext
) -> dict[int, bool]:
    """Match candidates with any character in the referenced corporation."""
    affiliations = await ctx.affiliations()
    return {
        user_id: user_id in affiliations and rule.value in affiliations[user_id].corporation_ids
        for user_id in candidates
    }


async def resolve_alliance(
    rule: CompiledRule, candidates: frozenset[int], ctx: LoaderContext
) -> dict[int, bool]:
    """Match candidates with any character in the referenced alliance."""
    affiliations = await ctx.affiliations()
    return {
        user_id: user_id in affiliations and rule.value in affiliations[user_id].alliance_ids
        for user_id in candidates
    }


async def leadership_character_ids(role: LeadershipRole, ctx: LoaderContext) -> frozenset[int]:
    """
    Characters holding the given leadership role in any candidate's corporation.

    CEO: the CEO of every loaded corporation.
    Executor: the CEO of every loaded corporation that is its alliance's
    executor corporation.
    """
    corporations = await ctx.corporations()

    if role == LeadershipRole.CEO:
        return frozenset(corp.ceo_character_id for corp in corporations.values())

    alliances = await ctx.alliances()
    leaders: set[int] = set()
    for corp in corporations.values():
        if corp.alliance_id is None:
            continue
        alliance = alliances.get(corp.alliance_id)
        if alliance is not None and alliance.executor_corporation_id == corp.corporation_id:
            leaders.add(corp.ceo_character_id)
    return frozenset(leaders)


async def resolve_role(
    rule: CompiledRule, candidates: frozenset[int], ctx: LoaderContext
) -> dict[int, bool]:
    """Match candidates owning a character that holds the leadership role."""
    affiliations = await ctx.affiliations()
    leaders = await leadership_character_ids(LeadershipRole(rule.value), ctx)
    return {
        user_id: user_id in affiliations
        and not leaders.isdisjoint(affiliations[user_id].character_ids)
        for user_id in candidates
    }


Resolver = Callable[[CompiledRule, frozenset[int], LoaderContext], Awaitable[dict[int, bool]]]

RESOLVERS: dict[FilterCriteria, Resolver] = {
    FilterCriteria.GROUP: resolve_group,
    FilterCriteria.CORPORATION: resolve_corporation,
    FilterCriteria.ALLIANCE: resolve_alliance,
    FilterCriteria.ROLE: resolve_role,
}


async def resolve(
    rule: CompiledRule, candidates: frozenset[int], ctx: LoaderContext
) -> dict[int, bool]:
    """Produce the raw match value of one rule for every candidate."""
    return await RESOLVERS[rule.criteria](rule, candidates, ctx)
