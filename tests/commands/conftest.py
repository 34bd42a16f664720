"""
Shared fixtures for command module tests.

Commands open the group database at the configured path for each call, so
fixtures seed and inspect that same file through short-lived connections.
"""

import argparse
import asyncio

import pytest

from groupgate.models import FilterType, GroupFilters, GroupType, NewGroup
from groupgate.services.store import GroupDatabase

ALLIANCE_FILTERS_YAML = """
filter_type: All
filter_rules:
  - {criteria: Alliance, criteria_type: Is, criteria_value: "99012770"}
"""


def run_with_store(action):
    """Open the configured database, await action(db) and close it."""

    async def run():
        async with GroupDatabase() as db:
            return await action(db)

    return asyncio.run(run())


@pytest.fixture
def cli_db(seed_store):
    """
    Seed the configured database and return a runner for store calls.

    Usage:
        def test_something(cli_db):
            stats = cli_db(lambda db: db.get_stats())
    """
    run_with_store(seed_store)
    return run_with_store


@pytest.fixture
def alliance_group(cli_db, make_rule):
    """An Open group restricted to alliance 99012770 (users 1 and 2 qualify)."""
    return cli_db(
        lambda db: db.create_group(
            NewGroup(
                name="Alliance Members",
                group_type=GroupType.OPEN,
                filters=GroupFilters(
                    filter_type=FilterType.ALL,
                    filter_rules=(make_rule("Alliance", 99012770),),
                ),
            )
        )
    )


@pytest.fixture
def filters_file(tmp_path):
    """YAML filter definition requiring alliance 99012770."""
    path = tmp_path / "alliance-members.yaml"
    path.write_text(ALLIANCE_FILTERS_YAML, encoding="utf-8")
    return path


@pytest.fixture
def namespace():
    """Build an argparse.Namespace from keyword arguments."""

    def _make(**kwargs):
        return argparse.Namespace(**kwargs)

    return _make
