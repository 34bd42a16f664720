"""
Groupgate Eligibility Commands

CLI commands for evaluating and managing group filter definitions:
- eligible: Which of these users currently qualify for a stored group
- preview: Evaluate an unsaved filter definition (YAML) against users
- validate: Check a filter definition (YAML) before saving it
- group-create: Create a group from a filter definition (YAML)
"""

from __future__ import annotations

import argparse
import asyncio
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from ..core import get_utc_timestamp
from ..core.logging import get_logger
from ..models import Group, GroupFilters, GroupType, NewGroup, load_group_filters

if TYPE_CHECKING:
    from ..services.store import GroupDatabase

logger = get_logger(__name__)


def _load_filters(path: str, query_ts: str) -> GroupFilters | dict[str, Any]:
    """Load a YAML definition, returning an error dict on failure."""
    try:
        return load_group_filters(path)
    except FileNotFoundError:
        return {
            "error": "file_not_found",
            "message": f"Filter definition not found: {path}",
            "query_timestamp": query_ts,
        }
    except (yaml.YAMLError, ValueError, ValidationError) as e:
        return {
            "error": "invalid_definition",
            "message": str(e),
            "file": path,
            "query_timestamp": query_ts,
        }


def cmd_eligible(args: argparse.Namespace) -> dict:
    """Compute the eligible subset of candidate users for a stored group."""
    from ..services.eligibility import EligibilityEngine, EligibilityError
    from ..services.store import GroupDatabase

    query_ts = get_utc_timestamp()
    candidates = sorted(set(args.user_ids))

    async def run() -> frozenset[int]:
        async with GroupDatabase() as db:
            return await EligibilityEngine(db).compute_eligible_members(args.group_id, candidates)

    try:
        eligible = asyncio.run(run())
    except EligibilityError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {
        "group_id": args.group_id,
        "candidates": candidates,
        "eligible": sorted(eligible),
        "ineligible": sorted(set(candidates) - eligible),
        "query_timestamp": query_ts,
    }


def cmd_preview(args: argparse.Namespace) -> dict:
    """Evaluate an unsaved filter definition against candidate users."""
    from ..services.eligibility import EligibilityEngine, EligibilityError
    from ..services.store import GroupDatabase

    query_ts = get_utc_timestamp()
    filters = _load_filters(args.file, query_ts)
    if isinstance(filters, dict):
        return filters

    candidates = sorted(set(args.user_ids))

    async def run() -> frozenset[int]:
        async with GroupDatabase() as db:
            return await EligibilityEngine(db).evaluate_filters(filters, candidates)

    try:
        eligible = asyncio.run(run())
    except EligibilityError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {
        "file": args.file,
        "filter_type": filters.filter_type.value,
        "rule_count": sum(1 for _ in filters.iter_rules()),
        "filter_group_count": len(filters.filter_groups),
        "candidates": candidates,
        "eligible": sorted(eligible),
        "query_timestamp": query_ts,
    }


async def _validate(db: GroupDatabase, filters: GroupFilters, offline: bool) -> None:
    from ..core.async_client import AsyncESIClient
    from ..services.affiliation import AffiliationFetcher, ESIEntityResolver
    from ..services.eligibility import validate_group_filters

    if offline:
        await validate_group_filters(filters, db)
        return

    async with AsyncESIClient() as client:
        resolver = ESIEntityResolver(db, AffiliationFetcher(client))
        await validate_group_filters(filters, resolver)


def cmd_validate(args: argparse.Namespace) -> dict:
    """
    Validate a filter definition.

    Checks criteria types, value formats and that referenced groups,
    corporations and alliances exist (store first, then ESI unless
    --offline).
    """
    from ..services.eligibility import EligibilityError
    from ..services.store import GroupDatabase

    query_ts = get_utc_timestamp()
    filters = _load_filters(args.file, query_ts)
    if isinstance(filters, dict):
        return filters

    async def run() -> None:
        async with GroupDatabase() as db:
            await _validate(db, filters, args.offline)

    try:
        asyncio.run(run())
    except EligibilityError as e:
        return {**e.to_dict(), "valid": False, "file": args.file, "query_timestamp": query_ts}

    return {
        "valid": True,
        "file": args.file,
        "rule_count": sum(1 for _ in filters.iter_rules()),
        "query_timestamp": query_ts,
    }


def cmd_group_create(args: argparse.Namespace) -> dict:
    """Validate a filter definition and create a group with it."""
    from ..services.eligibility import EligibilityError
    from ..services.store import GroupDatabase

    query_ts = get_utc_timestamp()
    filters = _load_filters(args.file, query_ts)
    if isinstance(filters, dict):
        return filters

    try:
        new_group = NewGroup(
            name=args.name,
            description=args.description,
            group_type=GroupType(args.type),
            confidential=args.confidential,
            leave_applications=args.leave_applications,
            filters=filters,
        )
    except ValidationError as e:
        return {"error": "invalid_group", "message": str(e), "query_timestamp": query_ts}

    async def run() -> Group:
        async with GroupDatabase() as db:
            await _validate(db, filters, args.offline)
            return await db.create_group(new_group)

    try:
        group = asyncio.run(run())
    except EligibilityError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {
        "status": "created",
        "group": group.model_dump(mode="json"),
        "query_timestamp": query_ts,
    }


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register eligibility command parsers."""

    # eligible: Evaluate a stored group
    eligible_parser = subparsers.add_parser(
        "eligible",
        help="Show which users currently qualify for a group",
    )
    eligible_parser.add_argument("group_id", type=int, help="Group ID")
    eligible_parser.add_argument("user_ids", type=int, nargs="+", help="Candidate user IDs")
    eligible_parser.set_defaults(func=cmd_eligible)

    # preview: Evaluate an unsaved definition
    preview_parser = subparsers.add_parser(
        "preview",
        help="Evaluate a filter definition file against users",
    )
    preview_parser.add_argument("file", help="Filter definition YAML file")
    preview_parser.add_argument("user_ids", type=int, nargs="+", help="Candidate user IDs")
    preview_parser.set_defaults(func=cmd_preview)

    # validate: Save-time checks
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a filter definition file",
    )
    validate_parser.add_argument("file", help="Filter definition YAML file")
    validate_parser.add_argument(
        "--offline",
        action="store_true",
        help="Only check against stored corporations and alliances (no ESI)",
    )
    validate_parser.set_defaults(func=cmd_validate)

    # group-create: Create a group from a definition
    create_parser = subparsers.add_parser(
        "group-create",
        help="Create a group with a filter definition file",
    )
    create_parser.add_argument("file", help="Filter definition YAML file")
    create_parser.add_argument("--name", required=True, help="Group name")
    create_parser.add_argument("--description", help="Group description")
    create_parser.add_argument(
        "--type",
        choices=[t.value for t in GroupType],
        default=GroupType.OPEN.value,
        help="Admission type (default: Open)",
    )
    create_parser.add_argument(
        "--confidential", action="store_true", help="Hide the member list"
    )
    create_parser.add_argument(
        "--leave-applications",
        action="store_true",
        help="Members must apply to leave",
    )
    create_parser.add_argument(
        "--offline",
        action="store_true",
        help="Only check against stored corporations and alliances (no ESI)",
    )
    create_parser.set_defaults(func=cmd_group_create)
