"""
RuleSet Evaluator.

Combines the per-rule matches of one flat rule list into an eligible set
with a single linear fold:

- All: everyone starts eligible; (Is, no match) and (IsNot, match) remove.
  A removed candidate never comes back within the rule set.
- Any: nobody starts eligible; (Is, match) and (IsNot, no match) add.
  Nothing is ever removed.

This gives the same answer as a full conjunction/disjunction over the
Is/IsNot predicates without keeping a rule-by-candidate matrix around.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from ...core.logging import get_logger
from ...models import FilterCriteriaType, FilterType
from .criteria import CompiledRule, resolve
from .loader import LoaderContext

logger = get_logger(__name__)


def accumulate_all(
    eligible: frozenset[int],
    criteria_type: FilterCriteriaType,
    matches: Mapping[int, bool],
) -> frozenset[int]:
    """Remove every candidate the rule rules out."""
    if criteria_type == FilterCriteriaType.IS:
        excluded = {user_id for user_id, matched in matches.items() if not matched}
    else:
        excluded = {user_id for user_id, matched in matches.items() if matched}
    return eligible - excluded


def accumulate_any(
    eligible: frozenset[int],
    criteria_type: FilterCriteriaType,
    matches: Mapping[int, bool],
) -> frozenset[int]:
    """Add every candidate the rule lets in."""
    if criteria_type == FilterCriteriaType.IS:
        admitted = {user_id for user_id, matched in matches.items() if matched}
    else:
        admitted = {user_id for user_id, matched in matches.items() if not matched}
    return eligible | admitted


@dataclass(frozen=True)
class Combinator:
    """Accumulation strategy: starting set plus the per-rule step."""

    name: str
    seed: Callable[[frozenset[int]], frozenset[int]]
    step: Callable[[frozenset[int], FilterCriteriaType, Mapping[int, bool]], frozenset[int]]


ALL_COMBINATOR = Combinator(name="All", seed=lambda candidates: candidates, step=accumulate_all)
ANY_COMBINATOR = Combinator(name="Any", seed=lambda candidates: frozenset(), step=accumulate_any)


def combinator_for(filter_type: FilterType) -> Combinator:
    return ALL_COMBINATOR if filter_type == FilterType.ALL else ANY_COMBINATOR


@dataclass(frozen=True)
class RuleSet:
    """A flat list of compiled rules under one combinator."""

    filter_type: FilterType
    rules: Sequence[CompiledRule]
    label: str = "rules"

    @property
    def combinator(self) -> Combinator:
        return combinator_for(self.filter_type)


async def evaluate_rule_set(
    rule_set: RuleSet,
    candidates: frozenset[int],
    ctx: LoaderContext,
) -> frozenset[int]:
    """
    Fold every rule of the set over the candidates.

    Args:
        rule_set: Rules and combinator to apply
        candidates: Candidate user ids
        ctx: Loader context supplying the datasets

    Returns:
        Candidates eligible under this rule set
    """
    combinator = rule_set.combinator
    eligible = combinator.seed(candidates)

    for rule in rule_set.rules:
        matches = await resolve(rule, candidates, ctx)
        eligible = combinator.step(eligible, rule.criteria_type, matches)

    logger.debug(
        "Rule set %s (%s, %d rules): %d of %d eligible",
        rule_set.label,
        combinator.name,
        len(rule_set.rules),
        len(eligible),
        len(candidates),
    )
    return eligible
