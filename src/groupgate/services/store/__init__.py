"""
Group Store Package.

aiosqlite storage for groups, filter definitions, memberships, applications
and cached affiliation data. GroupDatabase satisfies every eligibility
collaborator protocol.

Usage:
    from groupgate.services.store import GroupDatabase

    async with GroupDatabase() as db:
        filters = await db.get_group_filters(group_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .database import GroupDatabase


def __getattr__(name: str):
    """Lazy import to avoid circular dependencies."""
    if name in ("GroupDatabase", "SCHEMA_VERSION"):
        from . import database

        return getattr(database, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GroupDatabase",
    "SCHEMA_VERSION",
]
