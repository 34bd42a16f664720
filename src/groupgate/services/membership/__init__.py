"""
Membership Workflow Package.

Exports:
- MembershipService, SyncResult: admission, removal and application review
- MembershipError and its subclasses
"""

from __future__ import annotations

from .errors import (
    AlreadyMemberError,
    ApplicationClosedError,
    ApplicationNotFoundError,
    DuplicateApplicationError,
    MembershipError,
    NotEligibleError,
    NotMemberError,
)
from .service import MembershipService, SyncResult

__all__ = [
    "MembershipService",
    "SyncResult",
    "MembershipError",
    "NotEligibleError",
    "AlreadyMemberError",
    "NotMemberError",
    "DuplicateApplicationError",
    "ApplicationNotFoundError",
    "ApplicationClosedError",
]
