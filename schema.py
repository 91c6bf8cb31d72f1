"""Schema definitions and versioned migrations for the workout store."""

import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from errors import MigrationError

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2

TABLE_DEFINITIONS = {
    "schema_version": """CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        );""",
    "exercise_definitions": """CREATE TABLE IF NOT EXISTS exercise_definitions (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            category TEXT NOT NULL,
            type TEXT NOT NULL,
            unit TEXT NOT NULL,
            description TEXT,
            created_at INTEGER NOT NULL
        );""",
    "exercises": """CREATE TABLE IF NOT EXISTS exercises (
            id TEXT PRIMARY KEY,
            definition_id TEXT NOT NULL,
            date TEXT NOT NULL,
            created_at INTEGER NOT NULL,
            FOREIGN KEY(definition_id) REFERENCES exercise_definitions(id) ON DELETE CASCADE
        );""",
    "sets": """CREATE TABLE IF NOT EXISTS sets (
            id TEXT PRIMARY KEY,
            exercise_id TEXT NOT NULL,
            weight REAL,
            reps INTEGER,
            distance REAL,
            time INTEGER,
            note TEXT,
            timestamp INTEGER NOT NULL,
            FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
        );""",
}

INDEX_DEFINITIONS = [
    "CREATE INDEX IF NOT EXISTS idx_exercises_date ON exercises(date);",
    "CREATE INDEX IF NOT EXISTS idx_sets_exercise_id ON sets(exercise_id);",
    "CREATE INDEX IF NOT EXISTS idx_exercise_definitions_name ON exercise_definitions(name);",
]


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    up: Callable[[sqlite3.Connection], None]


def _table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
    return [row[1] for row in conn.execute(f"PRAGMA table_info({table});").fetchall()]


def _add_set_note(conn: sqlite3.Connection) -> None:
    if "note" not in _table_columns(conn, "sets"):
        conn.execute("ALTER TABLE sets ADD COLUMN note TEXT;")


MIGRATIONS: List[Migration] = [
    Migration(2, "Add note column to sets", _add_set_note),
]


def _now_ms() -> int:
    return int(time.time() * 1000)


class SchemaManager:
    """Creates tables and applies pending migrations.

    Connections handed to the manager must be in autocommit mode
    (``isolation_level=None``); each migration runs in its own explicit
    transaction together with the version bump.
    """

    EXPECTED_TABLES = ("schema_version", "exercise_definitions", "exercises", "sets")

    def __init__(
        self,
        migrations: Optional[Iterable[Migration]] = None,
        target_version: int = CURRENT_SCHEMA_VERSION,
    ) -> None:
        self.migrations = list(MIGRATIONS if migrations is None else migrations)
        self.target_version = target_version

    def initialize(self, conn: sqlite3.Connection) -> int:
        """Create tables, ensure the version row and migrate. Returns migrations applied."""
        self.create_tables(conn)
        self.initialize_version(conn)
        return self.run_migrations(conn)

    def create_tables(self, conn: sqlite3.Connection) -> None:
        for sql in TABLE_DEFINITIONS.values():
            conn.execute(sql)
        for sql in INDEX_DEFINITIONS:
            conn.execute(sql)

    def initialize_version(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("SELECT version FROM schema_version WHERE id = 1;").fetchone()
        if row is None:
            conn.execute(
                "INSERT INTO schema_version (id, version, updated_at) VALUES (1, ?, ?);",
                (self.target_version, _now_ms()),
            )
            logger.info("Initialized schema version to %s", self.target_version)

    @staticmethod
    def current_version(conn: sqlite3.Connection) -> int:
        try:
            row = conn.execute("SELECT version FROM schema_version WHERE id = 1;").fetchone()
        except sqlite3.OperationalError:
            return 0
        return int(row[0]) if row else 0

    @staticmethod
    def set_version(conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            "UPDATE schema_version SET version = ?, updated_at = ? WHERE id = 1;",
            (version, _now_ms()),
        )

    def pending(self, current: int) -> List[Migration]:
        return sorted(
            (m for m in self.migrations if current < m.version <= self.target_version),
            key=lambda m: m.version,
        )

    def run_migrations(self, conn: sqlite3.Connection) -> int:
        current = self.current_version(conn)
        if current >= self.target_version:
            logger.debug("Database is up to date (version %s)", current)
            return 0
        pending = self.pending(current)
        if not pending:
            self.set_version(conn, self.target_version)
            logger.info("Bumped schema version to %s", self.target_version)
            return 0
        for migration in pending:
            logger.info("Running migration %s: %s", migration.version, migration.name)
            conn.execute("BEGIN;")
            try:
                migration.up(conn)
                self.set_version(conn, migration.version)
            except Exception as exc:
                conn.execute("ROLLBACK;")
                logger.error("Migration %s failed: %s", migration.version, exc)
                raise MigrationError(migration.version, migration.name, exc) from exc
            conn.execute("COMMIT;")
        if pending[-1].version < self.target_version:
            self.set_version(conn, self.target_version)
        return len(pending)

    def validate(self, conn: sqlite3.Connection) -> bool:
        """Check tables exist; a version mismatch is only reported."""
        try:
            for table in self.EXPECTED_TABLES:
                row = conn.execute(
                    "SELECT count(*) FROM sqlite_master WHERE type='table' AND name=?;",
                    (table,),
                ).fetchone()
                if not row or row[0] == 0:
                    logger.error("Missing table: %s", table)
                    return False
            version = self.current_version(conn)
        except sqlite3.DatabaseError as exc:
            logger.error("Schema validation failed: %s", exc)
            return False
        if version != self.target_version:
            logger.warning(
                "Schema version mismatch: expected %s, got %s",
                self.target_version,
                version,
            )
        return True
