"""
Filter Tree Evaluator.

A group's definition is a two-level tree: one rule set per filter group,
plus one rule set made of the group's direct rules. Each rule set is
evaluated on its own and the results are combined with the group's own
filter_type: intersection for All, union for Any.

The group's filter_type does double duty. It is the combinator of the
direct rule set and also the combinator across all rule sets. A direct
rule set with no rules therefore contributes every candidate under All
and nobody under Any, leaving the combined result unchanged either way.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import reduce

from ...core.logging import get_logger
from ...models import FilterType, GroupFilters
from .criteria import compile_rule, required_datasets
from .loader import LoaderContext
from .ruleset import RuleSet, evaluate_rule_set

logger = get_logger(__name__)


def build_rule_sets(filters: GroupFilters) -> list[RuleSet]:
    """
    Compile a group definition into the rule sets to evaluate.

    Filter groups come first, in definition order, followed by exactly one
    rule set for the direct rules under the group's own filter_type.

    Raises:
        RuleConfigurationError: If any rule in the tree is malformed
    """
    rule_sets = [
        RuleSet(
            filter_type=filter_group.filter_type,
            rules=[
                compile_rule(rule, f"filter_groups[{group_index}].rules[{rule_index}]")
                for rule_index, rule in enumerate(filter_group.rules)
            ],
            label=f"filter_group:{filter_group.id if filter_group.id is not None else group_index}",
        )
        for group_index, filter_group in enumerate(filters.filter_groups)
    ]

    rule_sets.append(
        RuleSet(
            filter_type=filters.filter_type,
            rules=[
                compile_rule(rule, f"filter_rules[{rule_index}]")
                for rule_index, rule in enumerate(filters.filter_rules)
            ],
            label="direct",
        )
    )
    return rule_sets


def combine_results(filter_type: FilterType, results: Sequence[frozenset[int]]) -> frozenset[int]:
    """
    Combine rule set results with the group's combinator.

    Folds with intersection (All) or union (Any), seeded by the first result.
    """
    if not results:
        return frozenset()
    if filter_type == FilterType.ALL:
        return reduce(frozenset.intersection, results[1:], results[0])
    return reduce(frozenset.union, results[1:], results[0])


async def evaluate_filter_tree(
    filters: GroupFilters,
    candidates: frozenset[int],
    ctx: LoaderContext,
) -> frozenset[int]:
    """
    Evaluate a group definition against the candidates.

    A definition with no rules and no filter groups admits every candidate.
    Every rule is compiled before any dataset is fetched.

    Raises:
        RuleConfigurationError: If any rule in the tree is malformed
        DependencyUnavailableError: If a dataset cannot be fetched
    """
    if filters.is_empty:
        return candidates

    rule_sets = build_rule_sets(filters)

    if not candidates:
        return frozenset()

    await ctx.prefetch(required_datasets(rule for rs in rule_sets for rule in rs.rules))

    results = [await evaluate_rule_set(rule_set, candidates, ctx) for rule_set in rule_sets]
    return combine_results(filters.filter_type, results)
