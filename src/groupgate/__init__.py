"""
Groupgate - Group Membership Eligibility for EVE Online auth

Decides which users currently qualify for an auth group, from their
characters' corporations and alliances, leadership roles and existing
group memberships. Provides both library access and CLI commands.

Usage as library:
    from groupgate.services.eligibility import EligibilityEngine
    from groupgate.services.store import GroupDatabase

    async with GroupDatabase() as db:
        eligible = await EligibilityEngine(db).compute_eligible_members(group_id, [101, 102])

Usage as CLI:
    python -m groupgate eligible 1 101 102
    python -m groupgate sync 1
    python -m groupgate refresh-affiliations

Package structure:
    groupgate/
    ├── core/           # Config, logging, timestamps, async ESI client
    ├── models/         # Filter definitions and affiliation records
    ├── services/       # Eligibility engine, store, membership, affiliation
    └── commands/       # CLI command implementations
"""

__version__ = "1.0.0"
__author__ = "Groupgate Developers"

from .core import get_utc_timestamp
from .models import FilterCriteria, FilterCriteriaType, FilterType, GroupFilters, GroupType

__all__ = [
    "__version__",
    "FilterCriteria",
    "FilterCriteriaType",
    "FilterType",
    "GroupFilters",
    "GroupType",
    "get_utc_timestamp",
]
