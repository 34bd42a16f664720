"""
Groupgate Test Suite - Shared Fixtures and Configuration

Provides singleton resets, a temporary group database, and builders for
filter rules used across the suite.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from groupgate.models import (
    AllianceRecord,
    CharacterAffiliation,
    CharacterOwnership,
    CorporationRecord,
    FilterCriteria,
    FilterCriteriaType,
    FilterRule,
)

# Real ids used by the join scenarios
ALLIANCE_A = 99012770
ALLIANCE_B = 99011657
OTHER_ALLIANCE = 55555555
CORPORATION_A = 98755820
OTHER_CORPORATION = 98000001
CEO_CHARACTER = 2118500443
MEMBER_CHARACTER = 2122013871


def rule(
    criteria: str,
    value: object,
    criteria_type: str = "Is",
    rule_id: int | None = None,
) -> FilterRule:
    """Build a FilterRule from plain values."""
    return FilterRule(
        id=rule_id,
        criteria=FilterCriteria(criteria),
        criteria_type=FilterCriteriaType(criteria_type),
        criteria_value=str(value),
    )


@pytest.fixture
def make_rule():
    """
    Fixture providing the rule builder.

    Usage:
        def test_something(make_rule):
            r = make_rule("Alliance", 99012770, "IsNot")
    """
    return rule


async def seed_alliance_data(db) -> None:
    """
    Store two users in alliance 99012770 and two outsiders.

    - user 1 owns the CEO of corporation 98755820 (alliance executor)
    - user 2 owns a line member of the same corporation
    - user 3 owns a character in another corporation outside the alliance
    - user 4 owns no characters
    """
    await db.save_ownerships(
        [
            CharacterOwnership(user_id=1, character_id=CEO_CHARACTER, main=True),
            CharacterOwnership(user_id=2, character_id=MEMBER_CHARACTER, main=True),
            CharacterOwnership(user_id=3, character_id=90000003, main=True),
        ]
    )
    await db.save_character_affiliations(
        [
            CharacterAffiliation(CEO_CHARACTER, CORPORATION_A, ALLIANCE_A),
            CharacterAffiliation(MEMBER_CHARACTER, CORPORATION_A, ALLIANCE_A),
            CharacterAffiliation(90000003, OTHER_CORPORATION, OTHER_ALLIANCE),
        ]
    )
    await db.save_corporations(
        [
            CorporationRecord(
                corporation_id=CORPORATION_A,
                ceo_character_id=CEO_CHARACTER,
                alliance_id=ALLIANCE_A,
                name="Black Rose Inc.",
            ),
            CorporationRecord(
                corporation_id=OTHER_CORPORATION,
                ceo_character_id=90000099,
                alliance_id=OTHER_ALLIANCE,
                name="Other Corp",
            ),
        ]
    )
    await db.save_alliances(
        [
            AllianceRecord(
                alliance_id=ALLIANCE_A,
                executor_corporation_id=CORPORATION_A,
                name="Black Rose",
                ticker="BROSE",
            ),
            AllianceRecord(
                alliance_id=OTHER_ALLIANCE,
                executor_corporation_id=98000002,
                name="Other Alliance",
                ticker="OTHR",
            ),
        ]
    )


@pytest.fixture
def seed_store():
    """Fixture providing seed_alliance_data for databases opened by the test."""
    return seed_alliance_data


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Temporary database path for service-level tests."""
    return tmp_path / "test_groupgate.db"


@pytest_asyncio.fixture
async def temp_db(temp_db_path: Path) -> AsyncGenerator:
    """Create and initialize a temporary group database."""
    from groupgate.services.store.database import GroupDatabase

    db = GroupDatabase(db_path=temp_db_path)
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def seeded_db(temp_db):
    """Group database seeded by seed_alliance_data."""
    await seed_alliance_data(temp_db)
    return temp_db


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep settings away from the developer's environment and database."""
    for name in (
        "GROUPGATE_LOG_LEVEL",
        "GROUPGATE_DEBUG",
        "GROUPGATE_LOG_JSON",
        "GROUPGATE_NO_RETRY",
        "GROUPGATE_CONCURRENT_FETCH",
        "GROUPGATE_ESI_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GROUPGATE_INSTANCE_ROOT", str(tmp_path))
    monkeypatch.setenv("GROUPGATE_DB_PATH", str(tmp_path / "groupgate.db"))


@pytest.fixture(autouse=True)
def reset_all_singletons(isolated_environment):
    """
    Reset all module-level singletons between tests.

    Settings are reset first since logging reads from them.
    """

    def do_reset():
        from groupgate.core.config import reset_settings
        from groupgate.core.logging import reset_logging

        reset_settings()
        reset_logging()

    do_reset()
    yield
    do_reset()
