"""
Group Database.

aiosqlite-backed storage for groups, filter definitions, memberships,
applications and the character/corporation/alliance affiliation cache.

Implements every eligibility collaborator protocol, so one GroupDatabase
can back an EligibilityEngine directly. Queries run on aiosqlite's worker
thread, so dataset fetches gathered by the loader overlap instead of
blocking the event loop. Membership writes use INSERT OR IGNORE under
UNIQUE(group_id, user_id): repeating a join or a resync never creates
duplicates.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite

from ...core import unix_now
from ...core.config import get_settings
from ...core.logging import get_logger
from ...models import (
    AllianceRecord,
    ApplicationStatus,
    ApplicationType,
    CharacterAffiliation,
    CharacterOwnership,
    CorporationRecord,
    FilterCriteria,
    FilterCriteriaType,
    FilterGroup,
    FilterRule,
    FilterType,
    Group,
    GroupApplication,
    GroupFilters,
    GroupType,
    NewGroup,
    UserAffiliation,
    UserGroups,
)
from ..eligibility.errors import DependencyUnavailableError

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

SCHEMA_VERSION = 1

DEPENDENCY_NAME = "group database"

# =============================================================================
# Database Schema
# =============================================================================

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS groups (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    group_type TEXT NOT NULL,
    filter_type TEXT NOT NULL,           -- outer combinator and direct rule combinator
    confidential INTEGER NOT NULL DEFAULT 0,
    leave_applications INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS filter_groups (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    group_id INTEGER NOT NULL,
    filter_type TEXT NOT NULL,
    FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_filter_groups_group ON filter_groups(group_id);

-- A rule belongs to the group's direct rules (filter_group_id NULL)
-- or to exactly one filter group
CREATE TABLE IF NOT EXISTS filter_rules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    group_id INTEGER NOT NULL,
    filter_group_id INTEGER,
    criteria TEXT NOT NULL,
    criteria_type TEXT NOT NULL,
    criteria_value TEXT NOT NULL,
    FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE CASCADE,
    FOREIGN KEY (filter_group_id) REFERENCES filter_groups(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_filter_rules_group ON filter_rules(group_id, filter_group_id);

CREATE TABLE IF NOT EXISTS group_members (
    group_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    joined_at INTEGER NOT NULL,
    UNIQUE (group_id, user_id),
    FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_group_members_user ON group_members(user_id);

CREATE TABLE IF NOT EXISTS group_applications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    group_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    request_type TEXT NOT NULL,
    status TEXT NOT NULL,
    request_message TEXT,
    response_message TEXT,
    responder_id INTEGER,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_applications_group ON group_applications(group_id, status);

CREATE TABLE IF NOT EXISTS character_ownerships (
    character_id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    owner_hash TEXT NOT NULL DEFAULT '',
    main INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_ownerships_user ON character_ownerships(user_id);

-- Character affiliation from ESI POST /characters/affiliation/
CREATE TABLE IF NOT EXISTS characters (
    character_id INTEGER PRIMARY KEY,
    corporation_id INTEGER NOT NULL,
    alliance_id INTEGER,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS corporations (
    corporation_id INTEGER PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    ceo_character_id INTEGER NOT NULL,
    alliance_id INTEGER,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS alliances (
    alliance_id INTEGER PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    ticker TEXT NOT NULL DEFAULT '',
    executor_corporation_id INTEGER,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

INSERT OR REPLACE INTO metadata (key, value) VALUES ('schema_version', '1');
"""


def _placeholders(values: Sequence[object]) -> str:
    return ",".join("?" * len(values))



# =============================================================================
# Database Class
# =============================================================================


class GroupDatabase:
    """
    SQLite store for groups and affiliation data.

    Must be initialized before use, with initialize()/close() or as an
    async context manager:

        async with GroupDatabase() as db:
            filters = await db.get_group_filters(group_id)

    Connection configuration:
        PRAGMA journal_mode=WAL
        PRAGMA busy_timeout=5000
        PRAGMA foreign_keys=ON
    """

    def __init__(self, db_path: Path | str | None = None):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database. Defaults to settings.database_path
        """
        if db_path is None:
            db_path = get_settings().database_path
        self.db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the connection and create the schema if needed."""
        if self._db is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        db: aiosqlite.Connection | None = None
        try:
            db = await aiosqlite.connect(self.db_path)
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA busy_timeout=5000")
            await db.execute("PRAGMA foreign_keys=ON")
            await db.executescript(SCHEMA_SQL)
            await db.commit()
        except aiosqlite.Error as e:
            if db is not None:
                await db.close()
            raise self._unavailable("initialize", e) from e

        db.row_factory = aiosqlite.Row
        self._db = db
        logger.info("Group database initialized at %s", self.db_path)

    async def close(self) -> None:
        """Close the connection."""
        if self._db:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> GroupDatabase:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection, raising if not initialized."""
        if self._db is None:
            raise RuntimeError("Group database not initialized. Call initialize() first.")
        return self._db

    # =========================================================================
    # Query Helpers
    # =========================================================================

    @staticmethod
    def _unavailable(operation: str, error: Exception) -> DependencyUnavailableError:
        logger.error("Group database %s failed: %s", operation, error)
        return DependencyUnavailableError(DEPENDENCY_NAME, f"{operation}: {error}")

    async def _fetchall(
        self, operation: str, sql: str, params: Sequence[Any] = ()
    ) -> list[aiosqlite.Row]:
        try:
            cursor = await self.db.execute(sql, params)
            rows = await cursor.fetchall()
            await cursor.close()
        except aiosqlite.Error as e:
            raise self._unavailable(operation, e) from e
        return list(rows)

    async def _fetchone(
        self, operation: str, sql: str, params: Sequence[Any] = ()
    ) -> aiosqlite.Row | None:
        try:
            cursor = await self.db.execute(sql, params)
            row = await cursor.fetchone()
            await cursor.close()
        except aiosqlite.Error as e:
            raise self._unavailable(operation, e) from e
        return row

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the connection; commit on success, roll back on failure."""
        db = self.db
        try:
            yield db
            await db.commit()
        except aiosqlite.Error as e:
            await db.rollback()
            raise self._unavailable(operation, e) from e
        except BaseException:
            await db.rollback()
            raise

    # =========================================================================
    # Group Definitions
    # =========================================================================

    async def create_group(self, new_group: NewGroup) -> Group:
        """
        Persist a group and its filter definition in one transaction.

        The definition should already have passed validate_group_filters.
        """
        filters = new_group.filters
        async with self._transaction("create group") as db:
            cursor = await db.execute(
                """
                INSERT INTO groups
                (name, description, group_type, filter_type, confidential,
                 leave_applications, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new_group.name,
                    new_group.description,
                    new_group.group_type.value,
                    filters.filter_type.value,
                    int(new_group.confidential),
                    int(new_group.leave_applications),
                    unix_now(),
                ),
            )
            group_id = cursor.lastrowid
            await self._insert_filters(db, group_id, filters)

        logger.info("Created group %d (%s)", group_id, new_group.name)
        return Group(
            id=group_id,
            name=new_group.name,
            description=new_group.description,
            group_type=new_group.group_type,
            filter_type=filters.filter_type,
            confidential=new_group.confidential,
            leave_applications=new_group.leave_applications,
        )

    async def replace_group_filters(self, group_id: int, filters: GroupFilters) -> None:
        """Replace a group's whole filter definition."""
        async with self._transaction("replace filters") as db:
            await db.execute(
                "UPDATE groups SET filter_type = ? WHERE id = ?",
                (filters.filter_type.value, group_id),
            )
            await db.execute("DELETE FROM filter_rules WHERE group_id = ?", (group_id,))
            await db.execute("DELETE FROM filter_groups WHERE group_id = ?", (group_id,))
            await self._insert_filters(db, group_id, filters)

    async def _insert_filters(
        self, db: aiosqlite.Connection, group_id: int, filters: GroupFilters
    ) -> None:
        await self._insert_rules(db, group_id, None, filters.filter_rules)
        for filter_group in filters.filter_groups:
            cursor = await db.execute(
                "INSERT INTO filter_groups (group_id, filter_type) VALUES (?, ?)",
                (group_id, filter_group.filter_type.value),
            )
            await self._insert_rules(db, group_id, cursor.lastrowid, filter_group.rules)

    @staticmethod
    async def _insert_rules(
        db: aiosqlite.Connection,
        group_id: int,
        filter_group_id: int | None,
        rules: Sequence[FilterRule],
    ) -> None:
        if not rules:
            return
        await db.executemany(
            """
            INSERT INTO filter_rules
            (group_id, filter_group_id, criteria, criteria_type, criteria_value)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (
                    group_id,
                    filter_group_id,
                    rule.criteria.value,
                    rule.criteria_type.value,
                    rule.criteria_value,
                )
                for rule in rules
            ],
        )

    async def get_group(self, group_id: int) -> Group | None:
        """Get a group by id."""
        row = await self._fetchone("get group", "SELECT * FROM groups WHERE id = ?", (group_id,))
        return self._row_to_group(row) if row else None

    async def group_exists(self, group_id: int) -> bool:
        return await self.get_group(group_id) is not None

    async def get_group_filters(self, group_id: int) -> GroupFilters | None:
        """Load a group's complete filter definition."""
        group_row = await self._fetchone(
            "get group filters",
            "SELECT id, filter_type FROM groups WHERE id = ?",
            (group_id,),
        )
        if group_row is None:
            return None

        filter_group_rows = await self._fetchall(
            "get group filters",
            "SELECT id, filter_type FROM filter_groups WHERE group_id = ? ORDER BY id",
            (group_id,),
        )
        rule_rows = await self._fetchall(
            "get group filters",
            "SELECT * FROM filter_rules WHERE group_id = ? ORDER BY id",
            (group_id,),
        )

        direct_rules: list[FilterRule] = []
        grouped_rules: dict[int, list[FilterRule]] = defaultdict(list)
        for row in rule_rows:
            rule = self._row_to_rule(row)
            if row["filter_group_id"] is None:
                direct_rules.append(rule)
            else:
                grouped_rules[row["filter_group_id"]].append(rule)

        return GroupFilters(
            id=group_row["id"],
            filter_type=FilterType(group_row["filter_type"]),
            filter_rules=tuple(direct_rules),
            filter_groups=tuple(
                FilterGroup(
                    id=row["id"],
                    filter_type=FilterType(row["filter_type"]),
                    rules=tuple(grouped_rules.get(row["id"], ())),
                )
                for row in filter_group_rows
            ),
        )

    def _row_to_group(self, row: aiosqlite.Row) -> Group:
        return Group(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            group_type=GroupType(row["group_type"]),
            filter_type=FilterType(row["filter_type"]),
            confidential=bool(row["confidential"]),
            leave_applications=bool(row["leave_applications"]),
        )

    def _row_to_rule(self, row: aiosqlite.Row) -> FilterRule:
        return FilterRule(
            id=row["id"],
            criteria=FilterCriteria(row["criteria"]),
            criteria_type=FilterCriteriaType(row["criteria_type"]),
            criteria_value=row["criteria_value"],
        )

    # =========================================================================
    # Memberships
    # =========================================================================

    async def bulk_get_user_groups(self, user_ids: Sequence[int]) -> list[UserGroups]:
        """Group memberships for the given users (users without any are omitted)."""
        if not user_ids:
            return []
        rows = await self._fetchall(
            "get user groups",
            f"SELECT user_id, group_id FROM group_members "
            f"WHERE user_id IN ({_placeholders(user_ids)})",
            list(user_ids),
        )

        groups_by_user: dict[int, set[int]] = defaultdict(set)
        for row in rows:
            groups_by_user[row["user_id"]].add(row["group_id"])

        return [
            UserGroups(user_id=user_id, group_ids=frozenset(group_ids))
            for user_id, group_ids in groups_by_user.items()
        ]

    async def get_group_member_ids(self, group_id: int) -> frozenset[int]:
        """Current member ids of a group."""
        rows = await self._fetchall(
            "get group members",
            "SELECT user_id FROM group_members WHERE group_id = ?",
            (group_id,),
        )
        return frozenset(row["user_id"] for row in rows)

    async def is_member(self, group_id: int, user_id: int) -> bool:
        row = await self._fetchone(
            "check membership",
            "SELECT 1 FROM group_members WHERE group_id = ? AND user_id = ?",
            (group_id, user_id),
        )
        return row is not None

    async def add_group_members(self, group_id: int, user_ids: Sequence[int]) -> frozenset[int]:
        """
        Insert memberships, ignoring ones that already exist.

        Returns:
            The user ids that were actually inserted
        """
        if not user_ids:
            return frozenset()

        inserted: set[int] = set()
        now = unix_now()
        async with self._transaction("add group members") as db:
            for user_id in user_ids:
                cursor = await db.execute(
                    "INSERT OR IGNORE INTO group_members (group_id, user_id, joined_at) "
                    "VALUES (?, ?, ?)",
                    (group_id, user_id, now),
                )
                if cursor.rowcount:
                    inserted.add(user_id)
        return frozenset(inserted)

    async def remove_group_members(self, group_id: int, user_ids: Sequence[int]) -> int:
        """Delete memberships. Returns number of rows removed."""
        if not user_ids:
            return 0
        async with self._transaction("remove group members") as db:
            cursor = await db.execute(
                f"DELETE FROM group_members WHERE group_id = ? "
                f"AND user_id IN ({_placeholders(user_ids)})",
                [group_id, *user_ids],
            )
        return cursor.rowcount

    # =========================================================================
    # Applications
    # =========================================================================

    async def create_application(
        self,
        group_id: int,
        user_id: int,
        request_type: ApplicationType,
        request_message: str | None = None,
    ) -> GroupApplication:
        """Create an outstanding application."""
        now = unix_now()
        async with self._transaction("create application") as db:
            cursor = await db.execute(
                """
                INSERT INTO group_applications
                (group_id, user_id, request_type, status, request_message,
                 created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    group_id,
                    user_id,
                    request_type.value,
                    ApplicationStatus.OUTSTANDING.value,
                    request_message,
                    now,
                    now,
                ),
            )
        return GroupApplication(
            id=cursor.lastrowid,
            group_id=group_id,
            user_id=user_id,
            request_type=request_type,
            request_message=request_message,
            created_at=now,
            updated_at=now,
        )

    async def get_application(self, application_id: int) -> GroupApplication | None:
        row = await self._fetchone(
            "get application",
            "SELECT * FROM group_applications WHERE id = ?",
            (application_id,),
        )
        return self._row_to_application(row) if row else None

    async def find_outstanding_application(
        self, group_id: int, user_id: int, request_type: ApplicationType
    ) -> GroupApplication | None:
        row = await self._fetchone(
            "find application",
            """
            SELECT * FROM group_applications
            WHERE group_id = ? AND user_id = ? AND request_type = ? AND status = ?
            """,
            (group_id, user_id, request_type.value, ApplicationStatus.OUTSTANDING.value),
        )
        return self._row_to_application(row) if row else None

    async def list_applications(
        self,
        group_id: int | None = None,
        status: ApplicationStatus | None = None,
    ) -> list[GroupApplication]:
        query = "SELECT * FROM group_applications WHERE 1 = 1"
        params: list[object] = []
        if group_id is not None:
            query += " AND group_id = ?"
            params.append(group_id)
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)

        rows = await self._fetchall("list applications", query + " ORDER BY id", params)
        return [self._row_to_application(row) for row in rows]

    async def close_application(
        self,
        application_id: int,
        status: ApplicationStatus,
        responder_id: int | None = None,
        response_message: str | None = None,
    ) -> None:
        async with self._transaction("close application") as db:
            await db.execute(
                """
                UPDATE group_applications
                SET status = ?, responder_id = ?, response_message = ?, updated_at = ?
                WHERE id = ?
                """,
                (status.value, responder_id, response_message, unix_now(), application_id),
            )

    def _row_to_application(self, row: aiosqlite.Row) -> GroupApplication:
        return GroupApplication(
            id=row["id"],
            group_id=row["group_id"],
            user_id=row["user_id"],
            request_type=ApplicationType(row["request_type"]),
            status=ApplicationStatus(row["status"]),
            request_message=row["request_message"],
            response_message=row["response_message"],
            responder_id=row["responder_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # =========================================================================
    # Characters and Affiliations
    # =========================================================================

    async def save_ownerships(self, ownerships: Sequence[CharacterOwnership]) -> int:
        """Save user/character ownership links."""
        if not ownerships:
            return 0
        async with self._transaction("save ownerships") as db:
            await db.executemany(
                """
                INSERT OR REPLACE INTO character_ownerships
                (character_id, user_id, owner_hash, main)
                VALUES (?, ?, ?, ?)
                """,
                [(o.character_id, o.user_id, o.owner_hash, int(o.main)) for o in ownerships],
            )
        return len(ownerships)

    async def save_character_affiliations(
        self, affiliations: Sequence[CharacterAffiliation]
    ) -> int:
        """Save character -> corporation/alliance affiliations."""
        if not affiliations:
            return 0
        now = unix_now()
        async with self._transaction("save characters") as db:
            await db.executemany(
                """
                INSERT OR REPLACE INTO characters
                (character_id, corporation_id, alliance_id, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                [(a.character_id, a.corporation_id, a.alliance_id, now) for a in affiliations],
            )
        return len(affiliations)

    async def get_owned_character_ids(self, user_ids: Sequence[int] | None = None) -> list[int]:
        """Character ids owned by the given users (all owned characters if None)."""
        if user_ids is None:
            rows = await self._fetchall(
                "get owned characters", "SELECT character_id FROM character_ownerships"
            )
        elif not user_ids:
            return []
        else:
            rows = await self._fetchall(
                "get owned characters",
                f"SELECT character_id FROM character_ownerships "
                f"WHERE user_id IN ({_placeholders(user_ids)})",
                list(user_ids),
            )
        return [row["character_id"] for row in rows]

    async def bulk_get_user_affiliations(
        self, user_ids: Sequence[int]
    ) -> list[UserAffiliation]:
        """
        Union of characters, corporations and alliances per user.

        Users without any owned character are omitted. Owned characters
        without a known affiliation still count as the user's characters.
        """
        if not user_ids:
            return []
        rows = await self._fetchall(
            "get user affiliations",
            f"""
            SELECT o.user_id, o.character_id, c.corporation_id, c.alliance_id
            FROM character_ownerships o
            LEFT JOIN characters c ON c.character_id = o.character_id
            WHERE o.user_id IN ({_placeholders(user_ids)})
            """,
            list(user_ids),
        )

        characters: dict[int, set[int]] = defaultdict(set)
        corporations: dict[int, set[int]] = defaultdict(set)
        alliances: dict[int, set[int]] = defaultdict(set)
        for row in rows:
            user_id = row["user_id"]
            characters[user_id].add(row["character_id"])
            if row["corporation_id"] is not None:
                corporations[user_id].add(row["corporation_id"])
            if row["alliance_id"] is not None:
                alliances[user_id].add(row["alliance_id"])

        return [
            UserAffiliation(
                user_id=user_id,
                character_ids=frozenset(character_ids),
                corporation_ids=frozenset(corporations[user_id]),
                alliance_ids=frozenset(alliances[user_id]),
            )
            for user_id, character_ids in characters.items()
        ]

    # =========================================================================
    # Corporations and Alliances
    # =========================================================================

    async def save_corporations(self, records: Sequence[CorporationRecord]) -> int:
        """Save multiple corporation records."""
        if not records:
            return 0
        async with self._transaction("save corporations") as db:
            await db.executemany(
                """
                INSERT OR REPLACE INTO corporations
                (corporation_id, name, ceo_character_id, alliance_id, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        r.corporation_id,
                        r.name,
                        r.ceo_character_id,
                        r.alliance_id,
                        r.updated_at or unix_now(),
                    )
                    for r in records
                ],
            )
        return len(records)

    async def save_alliances(self, records: Sequence[AllianceRecord]) -> int:
        """Save multiple alliance records."""
        if not records:
            return 0
        async with self._transaction("save alliances") as db:
            await db.executemany(
                """
                INSERT OR REPLACE INTO alliances
                (alliance_id, name, ticker, executor_corporation_id, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        r.alliance_id,
                        r.name,
                        r.ticker,
                        r.executor_corporation_id,
                        r.updated_at or unix_now(),
                    )
                    for r in records
                ],
            )
        return len(records)

    async def bulk_get_corporations(
        self, corporation_ids: Sequence[int]
    ) -> list[CorporationRecord]:
        if not corporation_ids:
            return []
        rows = await self._fetchall(
            "get corporations",
            f"SELECT * FROM corporations "
            f"WHERE corporation_id IN ({_placeholders(corporation_ids)})",
            list(corporation_ids),
        )
        return [
            CorporationRecord(
                corporation_id=row["corporation_id"],
                ceo_character_id=row["ceo_character_id"],
                alliance_id=row["alliance_id"],
                name=row["name"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    async def bulk_get_alliances(self, alliance_ids: Sequence[int]) -> list[AllianceRecord]:
        if not alliance_ids:
            return []
        rows = await self._fetchall(
            "get alliances",
            f"SELECT * FROM alliances WHERE alliance_id IN ({_placeholders(alliance_ids)})",
            list(alliance_ids),
        )
        return [
            AllianceRecord(
                alliance_id=row["alliance_id"],
                executor_corporation_id=row["executor_corporation_id"],
                name=row["name"],
                ticker=row["ticker"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    async def corporation_exists(self, corporation_id: int) -> bool:
        return bool(await self.bulk_get_corporations([corporation_id]))

    async def alliance_exists(self, alliance_id: int) -> bool:
        return bool(await self.bulk_get_alliances([alliance_id]))

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_stats(self) -> dict[str, int]:
        """Row counts per table."""
        tables = (
            "groups",
            "filter_groups",
            "filter_rules",
            "group_members",
            "group_applications",
            "character_ownerships",
            "characters",
            "corporations",
            "alliances",
        )
        stats: dict[str, int] = {}
        for table in tables:
            row = await self._fetchone("get stats", f"SELECT COUNT(*) FROM {table}")
            stats[table] = row[0] if row else 0
        return stats
