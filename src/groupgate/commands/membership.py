"""
Groupgate Membership Commands

CLI commands for group membership workflows:
- sync: Remove members who no longer qualify
- add-members: Add the eligible subset of users to a group
- join / leave: Single-user requests (may open an application)
- applications: List applications
- application-respond: Accept or reject an outstanding application
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..core import get_utc_timestamp
from ..core.logging import get_logger
from ..models import ApplicationStatus

if TYPE_CHECKING:
    from ..services.membership import MembershipService

logger = get_logger(__name__)


def _run(
    action: Callable[[MembershipService], Awaitable[Any]], query_ts: str
) -> tuple[Any, dict | None]:
    """
    Run a workflow against a freshly opened store.

    Domain errors are mapped to an error dict.
    """
    from ..services.eligibility import EligibilityError
    from ..services.membership import MembershipError, MembershipService
    from ..services.store import GroupDatabase

    async def run() -> Any:
        async with GroupDatabase() as db:
            return await action(MembershipService(db))

    try:
        return asyncio.run(run()), None
    except (EligibilityError, MembershipError) as e:
        return None, {**e.to_dict(), "query_timestamp": query_ts}


def cmd_sync(args: argparse.Namespace) -> dict:
    """Re-evaluate current members and remove those no longer eligible."""
    query_ts = get_utc_timestamp()
    result, error = _run(lambda service: service.sync_group_members(args.group_id), query_ts)
    if error:
        return error
    return {**result.to_dict(), "query_timestamp": query_ts}


def cmd_add_members(args: argparse.Namespace) -> dict:
    """Add eligible users to a group."""
    query_ts = get_utc_timestamp()
    added, error = _run(
        lambda service: service.add_group_members(args.group_id, args.user_ids), query_ts
    )
    if error:
        return error
    return {
        "group_id": args.group_id,
        "requested": sorted(set(args.user_ids)),
        "added": sorted(added),
        "query_timestamp": query_ts,
    }


def cmd_join(args: argparse.Namespace) -> dict:
    """Join a group, or apply to join."""
    query_ts = get_utc_timestamp()
    application, error = _run(
        lambda service: service.join_group(args.group_id, args.user_id, args.message), query_ts
    )
    if error:
        return error
    return {
        "group_id": args.group_id,
        "user_id": args.user_id,
        "status": "applied" if application else "joined",
        "application": application.to_dict() if application else None,
        "query_timestamp": query_ts,
    }


def cmd_leave(args: argparse.Namespace) -> dict:
    """Leave a group, or apply to leave."""
    query_ts = get_utc_timestamp()
    application, error = _run(
        lambda service: service.leave_group(args.group_id, args.user_id, args.message), query_ts
    )
    if error:
        return error
    return {
        "group_id": args.group_id,
        "user_id": args.user_id,
        "status": "applied" if application else "left",
        "application": application.to_dict() if application else None,
        "query_timestamp": query_ts,
    }


def cmd_applications(args: argparse.Namespace) -> dict:
    """List group applications."""
    query_ts = get_utc_timestamp()
    status = ApplicationStatus(args.status) if args.status else None
    applications, error = _run(
        lambda service: service.store.list_applications(group_id=args.group_id, status=status),
        query_ts,
    )
    if error:
        return error
    return {
        "applications": [a.to_dict() for a in applications],
        "count": len(applications),
        "query_timestamp": query_ts,
    }


def cmd_application_respond(args: argparse.Namespace) -> dict:
    """Accept or reject an application."""
    query_ts = get_utc_timestamp()
    application, error = _run(
        lambda service: service.respond_to_application(
            args.application_id,
            accept=args.decision == "accept",
            responder_id=args.responder,
            response_message=args.message,
        ),
        query_ts,
    )
    if error:
        return error
    return {"application": application.to_dict(), "query_timestamp": query_ts}


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register membership command parsers."""

    sync_parser = subparsers.add_parser(
        "sync",
        help="Remove group members who no longer qualify",
    )
    sync_parser.add_argument("group_id", type=int, help="Group ID")
    sync_parser.set_defaults(func=cmd_sync)

    add_parser = subparsers.add_parser(
        "add-members",
        help="Add eligible users to a group",
    )
    add_parser.add_argument("group_id", type=int, help="Group ID")
    add_parser.add_argument("user_ids", type=int, nargs="+", help="User IDs to add")
    add_parser.set_defaults(func=cmd_add_members)

    join_parser = subparsers.add_parser(
        "join",
        help="Join a group (or apply, for Apply/Hidden groups)",
    )
    join_parser.add_argument("group_id", type=int, help="Group ID")
    join_parser.add_argument("user_id", type=int, help="User ID")
    join_parser.add_argument("--message", "-m", help="Application message")
    join_parser.set_defaults(func=cmd_join)

    leave_parser = subparsers.add_parser(
        "leave",
        help="Leave a group (or apply, when the group requires it)",
    )
    leave_parser.add_argument("group_id", type=int, help="Group ID")
    leave_parser.add_argument("user_id", type=int, help="User ID")
    leave_parser.add_argument("--message", "-m", help="Application message")
    leave_parser.set_defaults(func=cmd_leave)

    applications_parser = subparsers.add_parser(
        "applications",
        help="List group applications",
    )
    applications_parser.add_argument("--group", dest="group_id", type=int, help="Filter by group")
    applications_parser.add_argument(
        "--status",
        choices=[s.value for s in ApplicationStatus],
        help="Filter by status",
    )
    applications_parser.set_defaults(func=cmd_applications)

    respond_parser = subparsers.add_parser(
        "application-respond",
        help="Accept or reject an outstanding application",
    )
    respond_parser.add_argument("application_id", type=int, help="Application ID")
    respond_parser.add_argument("decision", choices=["accept", "reject"])
    respond_parser.add_argument("--responder", type=int, help="Responding user ID")
    respond_parser.add_argument("--message", "-m", help="Response message")
    respond_parser.set_defaults(func=cmd_application_respond)
