"""
Groupgate Services.

- eligibility: which users currently qualify for a group
- store: SQLite storage for groups, memberships and affiliations
- membership: join, leave, resync and application workflows
- affiliation: ESI refresh of character/corporation/alliance data
"""

from __future__ import annotations

__all__ = [
    "EligibilityEngine",
    "GroupDatabase",
    "MembershipService",
    "refresh_affiliations",
]


def __getattr__(name: str):
    """Lazy import services to avoid circular imports."""
    if name == "EligibilityEngine":
        from .eligibility import EligibilityEngine

        return EligibilityEngine
    if name == "GroupDatabase":
        from .store.database import GroupDatabase

        return GroupDatabase
    if name == "MembershipService":
        from .membership import MembershipService

        return MembershipService
    if name == "refresh_affiliations":
        from .affiliation import refresh_affiliations

        return refresh_affiliations
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
