"""
Pydantic models for group definitions and eligibility filters.

A group carries an outer combinator (`filter_type`), a flat list of direct
filter rules, and zero or more filter groups each with their own combinator.
These models are what storage hands to the eligibility engine and what the
CLI loads from YAML filter definitions.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Enumerations
# =============================================================================


class FilterType(str, Enum):
    """Combinator for a rule set: every rule must hold, or any rule may."""

    ALL = "All"
    ANY = "Any"


class FilterCriteria(str, Enum):
    """What a filter rule inspects."""

    GROUP = "Group"
    CORPORATION = "Corporation"
    ALLIANCE = "Alliance"
    ROLE = "Role"


class FilterCriteriaType(str, Enum):
    """
    Polarity of a filter rule.

    GREATER_THAN and LESS_THAN are reserved: they persist and round-trip
    but have no evaluation semantics.
    """

    IS = "Is"
    IS_NOT = "IsNot"
    GREATER_THAN = "GreaterThan"
    LESS_THAN = "LessThan"

    @property
    def is_evaluable(self) -> bool:
        return self in (FilterCriteriaType.IS, FilterCriteriaType.IS_NOT)


class LeadershipRole(str, Enum):
    """Accepted values for Role criteria."""

    CEO = "CEO"
    EXECUTOR = "Executor"


class GroupType(str, Enum):
    """
    How eligible users are admitted.

    - Open: anyone eligible joins immediately
    - Auto: membership is kept in sync with eligibility
    - Apply: eligible users submit an application
    - Hidden: like Apply, but not listed publicly
    """

    OPEN = "Open"
    AUTO = "Auto"
    APPLY = "Apply"
    HIDDEN = "Hidden"

    @property
    def requires_application(self) -> bool:
        return self in (GroupType.APPLY, GroupType.HIDDEN)


# =============================================================================
# Filter Definition Models
# =============================================================================


class FilterModel(BaseModel):
    """Base for immutable filter models."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FilterRule(FilterModel):
    """
    One eligibility rule.

    `criteria_value` is string encoded: an integer id for Group, Corporation
    and Alliance criteria, or "CEO"/"Executor" for Role criteria. `id` is
    None for rules that have not been persisted yet.
    """

    id: Optional[int] = None
    criteria: FilterCriteria
    criteria_type: FilterCriteriaType
    criteria_value: str

    @field_validator("criteria_value", mode="before")
    @classmethod
    def coerce_integer_value(cls, v: Any) -> Any:
        """Accept bare integer ids as written in YAML definitions."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class FilterGroup(FilterModel):
    """A nested rule set with its own combinator."""

    id: Optional[int] = None
    filter_type: FilterType
    rules: tuple[FilterRule, ...] = ()


class GroupFilters(FilterModel):
    """
    Complete eligibility definition of one group.

    `filter_type` is both the combinator of the direct `filter_rules` and
    the combinator applied across every rule set's result.
    """

    id: Optional[int] = None
    filter_type: FilterType = FilterType.ALL
    filter_rules: tuple[FilterRule, ...] = ()
    filter_groups: tuple[FilterGroup, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when the group places no restriction on membership."""
        return not self.filter_rules and not self.filter_groups

    def iter_rules(self):
        """Yield every rule: direct rules first, then each filter group's rules."""
        yield from self.filter_rules
        for filter_group in self.filter_groups:
            yield from filter_group.rules


class Group(FilterModel):
    """A group as stored, without its filters."""

    id: int
    name: str
    description: Optional[str] = None
    group_type: GroupType = GroupType.OPEN
    filter_type: FilterType = FilterType.ALL
    confidential: bool = False
    leave_applications: bool = False


class NewGroup(FilterModel):
    """Input for creating a group together with its filter definition."""

    name: str = Field(min_length=1)
    description: Optional[str] = None
    group_type: GroupType = GroupType.OPEN
    confidential: bool = False
    leave_applications: bool = False
    filters: GroupFilters = Field(default_factory=GroupFilters)


# =============================================================================
# YAML Loading
# =============================================================================


def parse_group_filters(data: dict[str, Any]) -> GroupFilters:
    """
    Build GroupFilters from a plain mapping.

    Accepts the persisted field names (`filter_type`, `filter_rules`,
    `filter_groups`, `rules`).
    """
    return GroupFilters.model_validate(data)


def load_group_filters(path: Path | str) -> GroupFilters:
    """
    Load a filter definition from a YAML file.

    Example:
        filter_type: Any
        filter_rules:
          - {criteria: Alliance, criteria_type: Is, criteria_value: "99012770"}
        filter_groups:
          - filter_type: All
            rules:
              - {criteria: Role, criteria_type: Is, criteria_value: CEO}

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is not a mapping
        pydantic.ValidationError: If the mapping is not a valid definition
    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Filter definition in {path} must be a mapping")

    return parse_group_filters(data)
