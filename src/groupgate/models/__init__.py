"""
Groupgate data models.

- groups: filter definitions and group metadata (pydantic)
- affiliation: character, corporation, alliance and membership records
"""

from .affiliation import (
    AffiliationSnapshot,
    AllianceRecord,
    ApplicationStatus,
    ApplicationType,
    CharacterAffiliation,
    CharacterOwnership,
    CorporationRecord,
    GroupApplication,
    UserAffiliation,
    UserGroups,
)
from .groups import (
    FilterCriteria,
    FilterCriteriaType,
    FilterGroup,
    FilterRule,
    FilterType,
    Group,
    GroupFilters,
    GroupType,
    LeadershipRole,
    NewGroup,
    load_group_filters,
    parse_group_filters,
)

__all__ = [
    # Groups
    "FilterCriteria",
    "FilterCriteriaType",
    "FilterGroup",
    "FilterRule",
    "FilterType",
    "Group",
    "GroupFilters",
    "GroupType",
    "LeadershipRole",
    "NewGroup",
    "load_group_filters",
    "parse_group_filters",
    # Affiliation
    "AffiliationSnapshot",
    "AllianceRecord",
    "ApplicationStatus",
    "ApplicationType",
    "CharacterAffiliation",
    "CharacterOwnership",
    "CorporationRecord",
    "GroupApplication",
    "UserAffiliation",
    "UserGroups",
]
