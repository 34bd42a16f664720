"""
Group Membership Eligibility Engine.

Given a group's filter definition and a set of candidate users, computes
which candidates currently qualify, from their characters' corporations,
alliances, leadership roles and existing group memberships.

Exports:
- EligibilityEngine, compute_eligible_members: entry points
- LoaderContext, Dataset: per-evaluation memoized datasets
- RuleSet, evaluate_rule_set, accumulate_all, accumulate_any: rule set fold
- build_rule_sets, combine_results, evaluate_filter_tree: filter tree
- validate_group_filters: save-time validation
- GroupNotFoundError, RuleConfigurationError, DependencyUnavailableError

Usage:
    from groupgate.services.eligibility import EligibilityEngine

    async with GroupDatabase() as db:
        eligible = await EligibilityEngine(db).compute_eligible_members(group_id, user_ids)
"""

from __future__ import annotations

from .criteria import CompiledRule, compile_rule, parse_criteria_value, required_datasets, resolve
from .engine import (
    EligibilityEngine,
    compute_eligible_members,
    compute_eligible_members_sync,
)
from .errors import (
    DependencyUnavailableError,
    EligibilityError,
    GroupNotFoundError,
    RuleConfigurationError,
)
from .loader import Dataset, LoaderContext, load
from .protocol import (
    AffiliationProvider,
    AllianceProvider,
    CorporationProvider,
    EligibilitySources,
    GroupMembershipProvider,
    GroupStorage,
)
from .ruleset import (
    ALL_COMBINATOR,
    ANY_COMBINATOR,
    Combinator,
    RuleSet,
    accumulate_all,
    accumulate_any,
    evaluate_rule_set,
)
from .tree import build_rule_sets, combine_results, evaluate_filter_tree
from .validation import EntityResolver, validate_filter_rules, validate_group_filters

__all__ = [
    # Entry points
    "EligibilityEngine",
    "compute_eligible_members",
    "compute_eligible_members_sync",
    # Errors
    "EligibilityError",
    "GroupNotFoundError",
    "RuleConfigurationError",
    "DependencyUnavailableError",
    # Loader
    "Dataset",
    "LoaderContext",
    "load",
    # Criteria
    "CompiledRule",
    "compile_rule",
    "parse_criteria_value",
    "required_datasets",
    "resolve",
    # Rule sets
    "ALL_COMBINATOR",
    "ANY_COMBINATOR",
    "Combinator",
    "RuleSet",
    "accumulate_all",
    "accumulate_any",
    "evaluate_rule_set",
    # Tree
    "build_rule_sets",
    "combine_results",
    "evaluate_filter_tree",
    # Validation
    "EntityResolver",
    "validate_filter_rules",
    "validate_group_filters",
    # Protocols
    "AffiliationProvider",
    "AllianceProvider",
    "CorporationProvider",
    "EligibilitySources",
    "GroupMembershipProvider",
    "GroupStorage",
]
