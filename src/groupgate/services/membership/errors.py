"""
Membership Workflow Errors.

Raised by join, leave and application handling when a request cannot be
honoured. Storage and eligibility failures propagate unchanged.
"""

from __future__ import annotations

from typing import Any


class MembershipError(Exception):
    """Base exception for membership workflows."""

    error_type = "membership_error"

    def __init__(self, message: str, group_id: int | None = None, user_id: int | None = None):
        self.group_id = group_id
        self.user_id = user_id
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        result: dict[str, Any] = {"error": self.error_type, "message": str(self)}
        if self.group_id is not None:
            result["group_id"] = self.group_id
        if self.user_id is not None:
            result["user_id"] = self.user_id
        return result


class NotEligibleError(MembershipError):
    """Raised when a user does not meet a group's requirements."""

    error_type = "not_eligible"

    def __init__(self, group_id: int, user_id: int):
        super().__init__(
            f"User {user_id} does not meet the requirements of group {group_id}",
            group_id=group_id,
            user_id=user_id,
        )


class AlreadyMemberError(MembershipError):
    error_type = "already_member"

    def __init__(self, group_id: int, user_id: int):
        super().__init__(
            f"User {user_id} is already a member of group {group_id}",
            group_id=group_id,
            user_id=user_id,
        )


class NotMemberError(MembershipError):
    error_type = "not_member"

    def __init__(self, group_id: int, user_id: int):
        super().__init__(
            f"User {user_id} is not a member of group {group_id}",
            group_id=group_id,
            user_id=user_id,
        )


class DuplicateApplicationError(MembershipError):
    """Raised when the user already has an outstanding application of this type."""

    error_type = "duplicate_application"

    def __init__(self, group_id: int, user_id: int, application_id: int):
        self.application_id = application_id
        super().__init__(
            f"User {user_id} already has outstanding application {application_id} "
            f"for group {group_id}",
            group_id=group_id,
            user_id=user_id,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["application_id"] = self.application_id
        return result


class ApplicationNotFoundError(MembershipError):
    error_type = "application_not_found"

    def __init__(self, application_id: int):
        self.application_id = application_id
        super().__init__(f"Application not found: {application_id}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["application_id"] = self.application_id
        return result


class ApplicationClosedError(MembershipError):
    """Raised when responding to an application that is no longer outstanding."""

    error_type = "application_closed"

    def __init__(self, application_id: int, status: str):
        self.application_id = application_id
        self.status = status
        super().__init__(f"Application {application_id} is already {status}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["application_id"] = self.application_id
        result["status"] = self.status
        return result
