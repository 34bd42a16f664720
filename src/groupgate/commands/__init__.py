"""
Groupgate Commands

Command implementations for the groupgate CLI.
Each module handles a logical group of related commands.
"""

from . import affiliation, eligibility, membership

__all__ = [
    "affiliation",
    "eligibility",
    "membership",
]
