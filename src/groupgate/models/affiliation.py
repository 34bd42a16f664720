"""
Affiliation and membership records.

Plain dataclasses exchanged between storage, the ESI refresher and the
eligibility engine. UserAffiliation and UserGroups are derived per
evaluation and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class UserAffiliation:
    """Union of a user's characters and their corporations/alliances."""

    user_id: int
    character_ids: frozenset[int] = frozenset()
    corporation_ids: frozenset[int] = frozenset()
    alliance_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class UserGroups:
    """Groups a user currently belongs to."""

    user_id: int
    group_ids: frozenset[int] = frozenset()


@dataclass
class CharacterOwnership:
    """Link between a user and one of their characters."""

    user_id: int
    character_id: int
    owner_hash: str = ""
    main: bool = False


@dataclass
class CharacterAffiliation:
    """Character's current corporation and alliance (ESI /characters/affiliation/)."""

    character_id: int
    corporation_id: int
    alliance_id: int | None = None


@dataclass
class CorporationRecord:
    """Corporation record."""

    corporation_id: int
    ceo_character_id: int
    alliance_id: int | None = None
    name: str = ""
    updated_at: int = 0


@dataclass
class AllianceRecord:
    """Alliance record."""

    alliance_id: int
    executor_corporation_id: int | None = None
    name: str = ""
    ticker: str = ""
    updated_at: int = 0


class ApplicationStatus(str, Enum):
    OUTSTANDING = "Outstanding"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class ApplicationType(str, Enum):
    JOIN = "Join"
    LEAVE = "Leave"


@dataclass
class GroupApplication:
    """A pending or completed request to join or leave a group."""

    id: int
    group_id: int
    user_id: int
    request_type: ApplicationType
    status: ApplicationStatus = ApplicationStatus.OUTSTANDING
    request_message: str | None = None
    response_message: str | None = None
    responder_id: int | None = None
    created_at: int = 0
    updated_at: int = 0

    @property
    def is_outstanding(self) -> bool:
        return self.status == ApplicationStatus.OUTSTANDING

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "group_id": self.group_id,
            "user_id": self.user_id,
            "request_type": self.request_type.value,
            "status": self.status.value,
            "request_message": self.request_message,
            "response_message": self.response_message,
            "responder_id": self.responder_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class AffiliationSnapshot:
    """Counts describing one refresh run."""

    characters: int = 0
    corporations: int = 0
    alliances: int = 0
    missing_characters: list[int] = field(default_factory=list)
