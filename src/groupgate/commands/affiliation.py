"""
Groupgate Affiliation Commands

CLI commands for the affiliation cache:
- refresh-affiliations: Update character/corporation/alliance data from ESI
- store-status: Show row counts of the group database
"""

from __future__ import annotations

import argparse
import asyncio

from ..core import get_utc_timestamp
from ..core.logging import get_logger
from ..models import AffiliationSnapshot

logger = get_logger(__name__)


def cmd_refresh_affiliations(args: argparse.Namespace) -> dict:
    """
    Refresh affiliations from ESI.

    With no character ids, refreshes every owned character in the store.
    """
    from ..services.affiliation import refresh_affiliations
    from ..services.eligibility import DependencyUnavailableError
    from ..services.store import GroupDatabase

    query_ts = get_utc_timestamp()

    async def run() -> tuple[list[int], AffiliationSnapshot]:
        async with GroupDatabase() as db:
            character_ids = args.character_ids or await db.get_owned_character_ids()
            snapshot = await refresh_affiliations(
                db, character_ids, refresh_existing=args.refresh_existing
            )
            return character_ids, snapshot

    try:
        character_ids, snapshot = asyncio.run(run())
    except DependencyUnavailableError as e:
        logger.error("Affiliation refresh failed: %s", e)
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {
        "status": "success",
        "requested": len(set(character_ids)),
        "characters": snapshot.characters,
        "corporations": snapshot.corporations,
        "alliances": snapshot.alliances,
        "missing_characters": snapshot.missing_characters,
        "query_timestamp": query_ts,
    }


def cmd_store_status(args: argparse.Namespace) -> dict:
    """Show group database status."""
    from ..services.eligibility import DependencyUnavailableError
    from ..services.store import GroupDatabase

    query_ts = get_utc_timestamp()
    db = GroupDatabase()

    async def run() -> dict[str, int]:
        async with db:
            return await db.get_stats()

    try:
        stats = asyncio.run(run())
    except DependencyUnavailableError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {
        "db_path": str(db.db_path),
        "stats": stats,
        "query_timestamp": query_ts,
    }


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register affiliation command parsers."""

    refresh_parser = subparsers.add_parser(
        "refresh-affiliations",
        help="Refresh character affiliations from ESI",
    )
    refresh_parser.add_argument(
        "character_ids",
        type=int,
        nargs="*",
        help="Character IDs (default: every owned character)",
    )
    refresh_parser.add_argument(
        "--refresh-existing",
        action="store_true",
        help="Also re-fetch corporations and alliances already stored",
    )
    refresh_parser.set_defaults(func=cmd_refresh_affiliations)

    status_parser = subparsers.add_parser(
        "store-status",
        help="Show group database status",
    )
    status_parser.set_defaults(func=cmd_store_status)
