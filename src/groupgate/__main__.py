#!/usr/bin/env python3
"""
Groupgate CLI Entry Point

Provides command-line interface for group eligibility and membership.
Run with: python -m groupgate <command> [args]
"""

import argparse
import json
import sys

from .core import get_utc_timestamp


def output_json(data: dict, indent: int = 2) -> None:
    """Print JSON output to stdout."""
    print(json.dumps(data, indent=indent))


def output_error(message: str, exit_code: int = 1, **kwargs) -> None:
    """Print error JSON and exit."""
    error_data = {
        "error": kwargs.pop("error_type", "error"),
        "message": message,
        "query_timestamp": get_utc_timestamp(),
    }
    error_data.update(kwargs)
    output_json(error_data)
    sys.exit(exit_code)


# =============================================================================
# Built-in Commands
# =============================================================================


def cmd_help(args: argparse.Namespace) -> dict:
    """Show help message."""
    help_text = """
═══════════════════════════════════════════════════════════════════
Groupgate - Group Membership Eligibility
───────────────────────────────────────────────────────────────────

Eligibility Commands:
  eligible <group> <users..>     Which users currently qualify for a group
  preview <yaml> <users..>       Evaluate an unsaved filter definition
  validate <yaml> [--offline]    Check a filter definition before saving
  group-create <yaml> --name N   Create a group from a filter definition
                                 --type Open|Auto|Apply|Hidden
                                 --confidential, --leave-applications

Membership Commands:
  sync <group>                   Remove members who no longer qualify
  add-members <group> <users..>  Add the eligible users to a group
  join <group> <user>            Join (or apply to join) a group
  leave <group> <user>           Leave (or apply to leave) a group
  applications [opts]            List applications
                                 --group N, --status Outstanding|Accepted|Rejected
  application-respond <id> accept|reject
                                 --responder N, --message TEXT

Affiliation Commands:
  refresh-affiliations [chars..] Refresh affiliations from ESI
                                 --refresh-existing
  store-status                   Show group database row counts

System Commands:
  help                           Show this help message

Examples:
  groupgate validate alliance-members.yaml
  groupgate group-create alliance-members.yaml --name "Alliance Members" --type Auto
  groupgate eligible 1 101 102 103
  groupgate refresh-affiliations 2118500443 2122013871
  groupgate sync 1

Usage:
  python3 -m groupgate <command> [args]

═══════════════════════════════════════════════════════════════════
"""
    print(help_text)
    return {}


# =============================================================================
# Main Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="groupgate",
        description="Groupgate - group membership eligibility for EVE Online auth",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Built-in commands
    help_parser = subparsers.add_parser("help", help="Show help message")
    help_parser.set_defaults(func=cmd_help)

    from .commands import affiliation, eligibility, membership

    eligibility.register_parsers(subparsers)
    membership.register_parsers(subparsers)
    affiliation.register_parsers(subparsers)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Default to help if no command
    if not args.command:
        cmd_help(args)
        return 0

    # Check if command has a handler function
    if not hasattr(args, "func"):
        output_error(
            f"Unknown command: {args.command}",
            error_type="unknown_command",
            hint="Run 'groupgate help' for usage",
        )

    # Execute command
    try:
        result = args.func(args)

        # Output result if it's a dict (JSON response)
        if isinstance(result, dict) and result:
            output_json(result)

            # Return non-zero exit code if result contains error
            if "error" in result:
                return 1

        return 0

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        output_error(str(e), error_type="command_error", command=args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
