"""
Eligibility Engine Errors.

Domain-specific exceptions for eligibility evaluation.
These errors are independent of the transport layer (CLI, HTTP, etc.).
"""

from __future__ import annotations

from typing import Any


class EligibilityError(Exception):
    """Base exception for eligibility operations."""

    error_type = "eligibility_error"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        return {"error": self.error_type, "message": str(self)}


class GroupNotFoundError(EligibilityError):
    """Raised when the requested group does not exist."""

    error_type = "group_not_found"

    def __init__(self, group_id: int):
        self.group_id = group_id
        super().__init__(f"Group not found: {group_id}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["group_id"] = self.group_id
        return result


class RuleConfigurationError(EligibilityError):
    """
    Raised when a filter rule cannot be evaluated as configured.

    Identifies the rule by its persisted id, or by its position when the
    rule has not been saved yet.
    """

    error_type = "rule_configuration_error"

    def __init__(
        self,
        rule_id: int | None,
        reason: str,
        position: str | None = None,
    ):
        self.rule_id = rule_id
        self.reason = reason
        self.position = position
        if rule_id is not None:
            where = f"rule {rule_id}"
        elif position is not None:
            where = f"rule at {position}"
        else:
            where = "rule"
        super().__init__(f"Invalid filter {where}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["rule_id"] = self.rule_id
        result["reason"] = self.reason
        if self.position is not None:
            result["position"] = self.position
        return result


class DependencyUnavailableError(EligibilityError):
    """
    Raised when a storage or network collaborator fails.

    The engine never retries; the caller's I/O policy decides.
    """

    error_type = "dependency_unavailable"

    def __init__(self, dependency: str, reason: str):
        self.dependency = dependency
        self.reason = reason
        super().__init__(f"{dependency} unavailable: {reason}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["dependency"] = self.dependency
        return result
