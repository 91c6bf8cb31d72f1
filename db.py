import datetime
import logging
import math
import os
import sqlite3
import threading
import time
import uuid
from contextlib import asynccontextmanager, contextmanager
from typing import Dict, Iterable, List, Optional, Tuple

import aiosqlite

from algorithms.set_comparator import SetComparator
from errors import InvalidInputError, NotFoundError, StoreBusyError
from models import (
    ExerciseDefinition,
    ExerciseType,
    LoggedExercise,
    LoggedSet,
    SetData,
)
from schema import SchemaManager
from seed_data import INITIAL_EXERCISE_DEFINITIONS

logger = logging.getLogger(__name__)

_UNSET = object()

_EXERCISE_SET_JOIN = (
    "SELECT e.id, e.definition_id, e.date, e.created_at, ed.name, ed.type, "
    "s.id, s.weight, s.reps, s.distance, s.time, s.note, s.timestamp "
    "FROM exercises e "
    "JOIN exercise_definitions ed ON e.definition_id = ed.id "
    "LEFT JOIN sets s ON e.id = s.exercise_id"
)

_SET_COLUMNS = "s.id, s.exercise_id, s.weight, s.reps, s.distance, s.time, s.note, s.timestamp"


def _new_id() -> str:
    return uuid.uuid4().hex


def _now_ms() -> int:
    return int(time.time() * 1000)


def _validate_date(value: str) -> str:
    try:
        datetime.date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"date must be YYYY-MM-DD, got {value!r}") from None
    if len(value) != 10:
        raise InvalidInputError(f"date must be YYYY-MM-DD, got {value!r}")
    return value


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidInputError(f"{field} is required")
    return str(value).strip()


def _validate_set_values(exercise_type: ExerciseType, values: SetData) -> SetData:
    """Check the populated columns match the exercise type."""
    required = exercise_type.fields
    cleaned: Dict[str, Optional[float]] = {}
    for field, value in values.as_dict().items():
        if field not in required:
            if value is not None:
                raise InvalidInputError(
                    f"{field} is not recorded for {exercise_type.value} exercises"
                )
            cleaned[field] = None
            continue
        if value is None:
            raise InvalidInputError(f"{field} is required for {exercise_type.value} exercises")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInputError(f"{field} must be a number")
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidInputError(f"{field} must be a finite number")
        if value < 0:
            raise InvalidInputError(f"{field} must be non-negative")
        if field in ("reps", "time"):
            if int(value) != value:
                raise InvalidInputError(f"{field} must be a whole number")
            value = int(value)
        else:
            value = float(value)
        cleaned[field] = value
    return SetData(**cleaned)


def _row_to_definition(row: Tuple) -> ExerciseDefinition:
    def_id, name, category, etype, unit, description, created_at = row
    return ExerciseDefinition(
        id=def_id,
        name=name,
        category=category,
        type=ExerciseType(etype),
        unit=unit,
        description=description,
        created_at=int(created_at),
    )


def _row_to_set(row: Tuple) -> LoggedSet:
    set_id, exercise_id, weight, reps, distance, secs, note, timestamp = row
    return LoggedSet(
        id=set_id,
        exercise_id=exercise_id,
        weight=weight,
        reps=reps,
        distance=distance,
        time=secs,
        note=note,
        timestamp=int(timestamp),
    )


def _group_exercise_rows(rows: Iterable[Tuple]) -> List[LoggedExercise]:
    """Fold join rows into exercises, keeping query order."""
    grouped: Dict[str, LoggedExercise] = {}
    for row in rows:
        ex_id, def_id, date, created_at, name, etype = row[:6]
        exercise = grouped.get(ex_id)
        if exercise is None:
            exercise = LoggedExercise(
                id=ex_id,
                definition_id=def_id,
                name=name,
                type=ExerciseType(etype),
                date=date,
                created_at=int(created_at),
            )
            grouped[ex_id] = exercise
        if row[6] is not None:
            exercise.sets.append(_row_to_set((row[6], ex_id) + tuple(row[7:])))
    return list(grouped.values())


def _insert_definition(
    conn: sqlite3.Connection,
    name: str,
    category: str,
    exercise_type: str,
    unit: str,
    description: Optional[str] = None,
) -> str:
    def_id = _new_id()
    conn.execute(
        "INSERT INTO exercise_definitions (id, name, category, type, unit, description, created_at) "
        "VALUES (?, ?, ?, ?, ?, ?, ?);",
        (
            def_id,
            _require_text(name, "name"),
            _require_text(category, "category"),
            ExerciseType.parse(exercise_type).value,
            _require_text(unit, "unit"),
            description or None,
            _now_ms(),
        ),
    )
    return def_id


def _delete_everything(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM sets;")
    conn.execute("DELETE FROM exercises;")
    conn.execute("DELETE FROM exercise_definitions;")


def _seed(conn: sqlite3.Connection) -> int:
    for record in INITIAL_EXERCISE_DEFINITIONS:
        _insert_definition(
            conn,
            record["name"],
            record["category"],
            record["type"],
            record["unit"],
            record.get("description"),
        )
    return len(INITIAL_EXERCISE_DEFINITIONS)


_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


@contextmanager
def write_lock(db_path: str):
    """Hold the single-writer lock for ``db_path`` or raise ``StoreBusyError``."""
    key = os.path.abspath(db_path)
    with _LOCKS_GUARD:
        lock = _LOCKS.setdefault(key, threading.Lock())
    if not lock.acquire(blocking=False):
        raise StoreBusyError(f"another write is in progress on {db_path}")
    try:
        yield
    finally:
        lock.release()


class Database:
    """Provides SQLite connection management and schema initialization.

    Every mutating call takes a per-file advisory lock. A second mutating
    call arriving while the lock is held fails with ``StoreBusyError``.
    """

    def __init__(
        self,
        db_path: str = "workout.db",
        *,
        seed: bool = True,
        schema: Optional[SchemaManager] = None,
    ) -> None:
        self._db_path = db_path
        self._schema = schema or SchemaManager()
        self._ensure_schema()
        if seed:
            self._seed_definitions()

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def schema(self) -> SchemaManager:
        return self._schema

    def _write_lock(self):
        return write_lock(self._db_path)

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path, isolation_level=None)
        try:
            connection.execute("PRAGMA foreign_keys=ON;")
            yield connection
        finally:
            connection.close()

    @contextmanager
    def _transaction(self):
        with self._write_lock(), self._connection() as conn:
            conn.execute("BEGIN;")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")

    def _ensure_schema(self) -> None:
        with self._write_lock(), self._connection() as conn:
            applied = self._schema.initialize(conn)
        if applied:
            logger.info("Applied %d migration(s) to %s", applied, self._db_path)

    def _seed_definitions(self) -> None:
        with self._transaction() as conn:
            count = conn.execute("SELECT COUNT(*) FROM exercise_definitions;").fetchone()[0]
            if count:
                return
            seeded = _seed(conn)
        logger.info("Seeded %d exercise definitions", seeded)

    def validate_schema(self) -> bool:
        with self._connection() as conn:
            return self._schema.validate(conn)

    def schema_version(self) -> int:
        with self._connection() as conn:
            return self._schema.current_version(conn)


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        """Run a write statement in its own transaction and return the row count."""
        with self._transaction() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            return conn.execute(query, params).fetchall()

    def fetch_one(self, query: str, params: Tuple = ()) -> Optional[Tuple]:
        with self._connection() as conn:
            return conn.execute(query, params).fetchone()


class HistoryRepository(BaseRepository):
    """Read-only queries over the set history of a definition."""

    def fetch_history_by_name(
        self,
        name: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        exclude_date: Optional[str] = None,
    ) -> List[Tuple[str, LoggedSet]]:
        """Return ``(date, set)`` pairs for a definition ordered by date then insertion."""
        query = (
            f"SELECT e.date, {_SET_COLUMNS} FROM sets s "
            "JOIN exercises e ON s.exercise_id = e.id "
            "JOIN exercise_definitions ed ON e.definition_id = ed.id "
            "WHERE ed.name = ?"
        )
        params: List[str] = [name]
        if start_date:
            query += " AND e.date >= ?"
            params.append(start_date)
        if end_date:
            query += " AND e.date <= ?"
            params.append(end_date)
        if exclude_date:
            query += " AND e.date != ?"
            params.append(exclude_date)
        query += " ORDER BY e.date ASC, s.timestamp ASC, s.rowid ASC;"
        return [(r[0], _row_to_set(r[1:])) for r in self.fetch_all(query, tuple(params))]

    def definition_type(self, name: str) -> Optional[ExerciseType]:
        row = self.fetch_one("SELECT type FROM exercise_definitions WHERE name = ?;", (name,))
        return ExerciseType(row[0]) if row else None

    def personal_best_for_exercise(
        self, name: str, exclude_date: Optional[str] = None
    ) -> Optional[LoggedSet]:
        """Best set ever recorded for ``name``, or ``None`` without history."""
        exercise_type = self.definition_type(name)
        if exercise_type is None:
            return None
        history = self.fetch_history_by_name(name, exclude_date=exclude_date)
        return SetComparator.find_best_set((s for _d, s in history), exercise_type)


class ExerciseDefinitionRepository(BaseRepository):
    """Repository for the exercise catalog."""

    _COLUMNS = "id, name, category, type, unit, description, created_at"

    def add(
        self,
        name: str,
        category: str,
        exercise_type: str,
        unit: str,
        description: Optional[str] = None,
    ) -> str:
        _require_text(name, "name")
        _require_text(category, "category")
        _require_text(unit, "unit")
        ExerciseType.parse(exercise_type)
        with self._transaction() as conn:
            return _insert_definition(conn, name, category, exercise_type, unit, description)

    def fetch_all(self) -> List[ExerciseDefinition]:
        rows = super().fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_definitions ORDER BY name ASC;"
        )
        return [_row_to_definition(r) for r in rows]

    def fetch_by_name(self, name: str) -> Optional[ExerciseDefinition]:
        row = self.fetch_one(
            f"SELECT {self._COLUMNS} FROM exercise_definitions WHERE name = ? LIMIT 1;",
            (name,),
        )
        return _row_to_definition(row) if row else None

    def fetch_by_id(self, definition_id: str) -> Optional[ExerciseDefinition]:
        row = self.fetch_one(
            f"SELECT {self._COLUMNS} FROM exercise_definitions WHERE id = ?;",
            (definition_id,),
        )
        return _row_to_definition(row) if row else None

    def update(
        self,
        definition_id: str,
        *,
        name: Optional[str] = None,
        category: Optional[str] = None,
        exercise_type: Optional[str] = None,
        unit: Optional[str] = None,
        description=_UNSET,
    ) -> None:
        fields: List[str] = []
        params: List = []
        if name is not None:
            fields.append("name = ?")
            params.append(_require_text(name, "name"))
        if category is not None:
            fields.append("category = ?")
            params.append(_require_text(category, "category"))
        if exercise_type is not None:
            fields.append("type = ?")
            params.append(ExerciseType.parse(exercise_type).value)
        if unit is not None:
            fields.append("unit = ?")
            params.append(_require_text(unit, "unit"))
        if description is not _UNSET:
            fields.append("description = ?")
            params.append(description or None)
        if not fields:
            if self.fetch_by_id(definition_id) is None:
                raise NotFoundError(f"exercise definition {definition_id} not found")
            return
        params.append(definition_id)
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT type FROM exercise_definitions WHERE id = ?;", (definition_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"exercise definition {definition_id} not found")
            if exercise_type is not None and ExerciseType.parse(exercise_type).value != row[0]:
                logged = conn.execute(
                    "SELECT 1 FROM exercises WHERE definition_id = ? LIMIT 1;",
                    (definition_id,),
                ).fetchone()
                if logged:
                    raise InvalidInputError(
                        "type cannot change on an exercise that already has logged history"
                    )
            conn.execute(
                f"UPDATE exercise_definitions SET {', '.join(fields)} WHERE id = ?;",
                tuple(params),
            )

    def delete(self, definition_id: str) -> None:
        """Delete a definition with its logged exercises and their sets."""
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM sets WHERE exercise_id IN "
                "(SELECT id FROM exercises WHERE definition_id = ?);",
                (definition_id,),
            )
            conn.execute("DELETE FROM exercises WHERE definition_id = ?;", (definition_id,))
            cur = conn.execute("DELETE FROM exercise_definitions WHERE id = ?;", (definition_id,))
            if cur.rowcount == 0:
                raise NotFoundError(f"exercise definition {definition_id} not found")

    def categories(self) -> List[str]:
        rows = super().fetch_all(
            "SELECT DISTINCT category FROM exercise_definitions ORDER BY category ASC;"
        )
        return [r[0] for r in rows]

    def used_definitions(self) -> List[ExerciseDefinition]:
        """Definitions with at least one logged exercise."""
        rows = super().fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_definitions "
            "WHERE id IN (SELECT DISTINCT definition_id FROM exercises) "
            "ORDER BY name ASC;"
        )
        return [_row_to_definition(r) for r in rows]

    def replace_all(self, records: Iterable[dict]) -> int:
        """Delete every row in the store and insert ``records`` atomically."""
        records = list(records)
        with self._transaction() as conn:
            _delete_everything(conn)
            for record in records:
                _insert_definition(
                    conn,
                    record["name"],
                    record["category"],
                    record["type"],
                    record["unit"],
                    record.get("description"),
                )
        return len(records)


class ExerciseRepository(HistoryRepository):
    """Repository for exercises logged on a date."""

    def add(self, definition_id: str, date: str) -> str:
        _validate_date(date)
        ex_id = _new_id()
        self.execute(
            "INSERT INTO exercises (id, definition_id, date, created_at) VALUES (?, ?, ?, ?);",
            (ex_id, definition_id, date, _now_ms()),
        )
        return ex_id

    def find_id(self, definition_id: str, date: str) -> Optional[str]:
        row = self.fetch_one(
            "SELECT id FROM exercises WHERE definition_id = ? AND date = ? "
            "ORDER BY created_at ASC LIMIT 1;",
            (definition_id, date),
        )
        return row[0] if row else None

    def get_or_create(self, definition_id: str, date: str) -> str:
        _validate_date(date)
        existing = self.find_id(definition_id, date)
        if existing is not None:
            return existing
        return self.add(definition_id, date)

    def fetch_for_date_by_definition(
        self, definition_id: str, date: str
    ) -> Optional[LoggedExercise]:
        rows = self.fetch_all(
            f"{_EXERCISE_SET_JOIN} WHERE e.definition_id = ? AND e.date = ? "
            "ORDER BY e.created_at ASC, e.rowid ASC, s.timestamp ASC, s.rowid ASC;",
            (definition_id, date),
        )
        exercises = _group_exercise_rows(rows)
        return exercises[0] if exercises else None

    def remove(self, exercise_id: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM sets WHERE exercise_id = ?;", (exercise_id,))
            cur = conn.execute("DELETE FROM exercises WHERE id = ?;", (exercise_id,))
            if cur.rowcount == 0:
                raise NotFoundError(f"exercise {exercise_id} not found")

    def exercises_for_date(
        self, date: str, flag_personal_bests: bool = False
    ) -> List[LoggedExercise]:
        """Exercises logged on ``date`` with their sets, including ones with no sets."""
        rows = self.fetch_all(
            f"{_EXERCISE_SET_JOIN} WHERE e.date = ? "
            "ORDER BY e.created_at ASC, e.rowid ASC, s.timestamp ASC, s.rowid ASC;",
            (date,),
        )
        exercises = _group_exercise_rows(rows)
        if flag_personal_bests:
            for exercise in exercises:
                prior = self.personal_best_for_exercise(exercise.name, exclude_date=date)
                SetComparator.flag_personal_bests(exercise.sets, prior, exercise.type)
        return exercises

    def all_with_sets(self) -> List[LoggedExercise]:
        rows = self.fetch_all(
            f"{_EXERCISE_SET_JOIN} "
            "ORDER BY e.date DESC, e.created_at ASC, e.rowid ASC, s.timestamp ASC, s.rowid ASC;"
        )
        return _group_exercise_rows(rows)

    def dates_with_exercises(self, start_date: str, end_date: str) -> List[str]:
        rows = self.fetch_all(
            "SELECT DISTINCT date FROM exercises WHERE date >= ? AND date <= ? "
            "ORDER BY date ASC;",
            (start_date, end_date),
        )
        return [r[0] for r in rows]

    def last_exercise_by_name(
        self, name: str, exclude_date: Optional[str] = None
    ) -> Optional[LoggedExercise]:
        """Most recent logged exercise for ``name``, used to pre-fill inputs."""
        query = (
            "SELECT e.id FROM exercises e "
            "JOIN exercise_definitions ed ON e.definition_id = ed.id "
            "WHERE ed.name = ?"
        )
        params: List[str] = [name]
        if exclude_date:
            query += " AND e.date != ?"
            params.append(exclude_date)
        query += " ORDER BY e.date DESC, e.created_at DESC, e.rowid DESC LIMIT 1;"
        row = self.fetch_one(query, tuple(params))
        if row is None:
            return None
        rows = self.fetch_all(
            f"{_EXERCISE_SET_JOIN} WHERE e.id = ? ORDER BY s.timestamp ASC, s.rowid ASC;",
            (row[0],),
        )
        return _group_exercise_rows(rows)[0]

    def used_definition_ids(self) -> List[str]:
        rows = self.fetch_all("SELECT DISTINCT definition_id FROM exercises;")
        return [r[0] for r in rows]


class SetRepository(HistoryRepository):
    """Repository for sets table operations."""

    def _exercise_type(self, exercise_id: str) -> ExerciseType:
        row = self.fetch_one(
            "SELECT ed.type FROM exercises e "
            "JOIN exercise_definitions ed ON e.definition_id = ed.id WHERE e.id = ?;",
            (exercise_id,),
        )
        if row is None:
            raise NotFoundError(f"exercise {exercise_id} not found")
        return ExerciseType(row[0])

    def _definition_sets(self, exercise_id: str) -> List[LoggedSet]:
        return [
            _row_to_set(r)
            for r in self.fetch_all(
                f"SELECT {_SET_COLUMNS} FROM sets s "
                "JOIN exercises e ON s.exercise_id = e.id "
                "WHERE e.definition_id = (SELECT definition_id FROM exercises WHERE id = ?) "
                "ORDER BY s.timestamp ASC, s.rowid ASC;",
                (exercise_id,),
            )
        ]

    def add(
        self,
        exercise_id: str,
        *,
        weight: Optional[float] = None,
        reps: Optional[int] = None,
        distance: Optional[float] = None,
        time: Optional[int] = None,
        note: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> LoggedSet:
        """Insert a set and report whether it is a new personal best."""
        exercise_type = self._exercise_type(exercise_id)
        values = _validate_set_values(
            exercise_type, SetData(weight=weight, reps=reps, distance=distance, time=time)
        )
        current_best = SetComparator.find_best_set(
            self._definition_sets(exercise_id), exercise_type
        )
        logged = LoggedSet(
            id=_new_id(),
            exercise_id=exercise_id,
            note=note or None,
            timestamp=timestamp if timestamp is not None else _now_ms(),
            **values.as_dict(),
        )
        logged.is_personal_best = SetComparator.is_new_personal_best(
            logged, current_best, exercise_type
        )
        self.execute(
            "INSERT INTO sets (id, exercise_id, weight, reps, distance, time, note, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?);",
            (
                logged.id,
                exercise_id,
                logged.weight,
                logged.reps,
                logged.distance,
                logged.time,
                logged.note,
                logged.timestamp,
            ),
        )
        return logged

    def fetch_detail(self, set_id: str) -> LoggedSet:
        row = self.fetch_one(
            f"SELECT {_SET_COLUMNS} FROM sets s WHERE s.id = ?;", (set_id,)
        )
        if row is None:
            raise NotFoundError(f"set {set_id} not found")
        return _row_to_set(row)

    def update(
        self,
        set_id: str,
        *,
        weight=_UNSET,
        reps=_UNSET,
        distance=_UNSET,
        time=_UNSET,
        note=_UNSET,
    ) -> LoggedSet:
        """Change the given fields; passing ``None`` clears a field."""
        current = self.fetch_detail(set_id)
        exercise_type = self._exercise_type(current.exercise_id)
        merged = SetData(
            weight=current.weight if weight is _UNSET else weight,
            reps=current.reps if reps is _UNSET else reps,
            distance=current.distance if distance is _UNSET else distance,
            time=current.time if time is _UNSET else time,
        )
        values = _validate_set_values(exercise_type, merged)
        new_note = current.note if note is _UNSET else (note or None)
        count = self.execute(
            "UPDATE sets SET weight = ?, reps = ?, distance = ?, time = ?, note = ? WHERE id = ?;",
            (values.weight, values.reps, values.distance, values.time, new_note, set_id),
        )
        if count == 0:
            raise NotFoundError(f"set {set_id} not found")
        return LoggedSet(
            id=set_id,
            exercise_id=current.exercise_id,
            note=new_note,
            timestamp=current.timestamp,
            **values.as_dict(),
        )

    def remove(self, set_id: str) -> None:
        if self.execute("DELETE FROM sets WHERE id = ?;", (set_id,)) == 0:
            raise NotFoundError(f"set {set_id} not found")

    def fetch_for_exercise(self, exercise_id: str) -> List[LoggedSet]:
        rows = self.fetch_all(
            f"SELECT {_SET_COLUMNS} FROM sets s WHERE s.exercise_id = ? "
            "ORDER BY s.timestamp ASC, s.rowid ASC;",
            (exercise_id,),
        )
        return [_row_to_set(r) for r in rows]

    def fetch_export_rows(self) -> List[Tuple]:
        """Every set with its date and definition, in export order."""
        return self.fetch_all(
            "SELECT e.date, ed.name, ed.category, ed.type, "
            "s.weight, s.reps, s.distance, s.time "
            "FROM exercises e "
            "JOIN exercise_definitions ed ON e.definition_id = ed.id "
            "JOIN sets s ON e.id = s.exercise_id "
            "ORDER BY e.date DESC, ed.name ASC, s.timestamp ASC, s.rowid ASC;"
        )


class MaintenanceRepository(BaseRepository):
    """Whole-store operations."""

    def clear_workout_data(self) -> None:
        """Delete logged exercises and sets but keep the catalog."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM sets;")
            conn.execute("DELETE FROM exercises;")
        logger.info("Cleared workout data in %s", self._db_path)

    def clear_database(self, reseed: bool = True) -> int:
        """Delete everything and re-seed the initial catalog in one transaction."""
        with self._transaction() as conn:
            _delete_everything(conn)
            seeded = _seed(conn) if reseed else 0
        logger.info("Cleared database %s, seeded %d definitions", self._db_path, seeded)
        return seeded

    def purge_orphans(self) -> Dict[str, int]:
        with self._transaction() as conn:
            exercises = conn.execute(
                "DELETE FROM exercises WHERE definition_id NOT IN "
                "(SELECT id FROM exercise_definitions);"
            ).rowcount
            sets = conn.execute(
                "DELETE FROM sets WHERE exercise_id NOT IN (SELECT id FROM exercises);"
            ).rowcount
        if sets or exercises:
            logger.warning("Purged %d orphaned sets and %d orphaned exercises", sets, exercises)
        return {"sets": sets, "exercises": exercises}

    def counts(self) -> Dict[str, int]:
        with self._connection() as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table};").fetchone()[0]
                for table in ("exercise_definitions", "exercises", "sets")
            }

    def database_size(self) -> int:
        if not os.path.exists(self._db_path):
            return 0
        return os.path.getsize(self._db_path)


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path, isolation_level=None)
        try:
            await conn.execute("PRAGMA foreign_keys=ON;")
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def _async_transaction(self):
        with self._write_lock():
            async with self._async_connection() as conn:
                await conn.execute("BEGIN;")
                try:
                    yield conn
                except BaseException:
                    await conn.execute("ROLLBACK;")
                    raise
                await conn.execute("COMMIT;")


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_transaction() as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return [tuple(r) for r in rows]

    async def fetch_one(self, query: str, params: Tuple = ()) -> Optional[Tuple]:
        rows = await self.fetch_all(query, params)
        return rows[0] if rows else None


class AsyncExerciseRepository(AsyncBaseRepository):
    """Asynchronous repository for logged exercises."""

    async def add(self, definition_id: str, date: str) -> str:
        _validate_date(date)
        ex_id = _new_id()
        await self.execute(
            "INSERT INTO exercises (id, definition_id, date, created_at) VALUES (?, ?, ?, ?);",
            (ex_id, definition_id, date, _now_ms()),
        )
        return ex_id

    async def remove(self, exercise_id: str) -> None:
        async with self._async_transaction() as conn:
            await conn.execute("DELETE FROM sets WHERE exercise_id = ?;", (exercise_id,))
            cur = await conn.execute("DELETE FROM exercises WHERE id = ?;", (exercise_id,))
            if cur.rowcount == 0:
                raise NotFoundError(f"exercise {exercise_id} not found")

    async def exercises_for_date(self, date: str) -> List[LoggedExercise]:
        rows = await self.fetch_all(
            f"{_EXERCISE_SET_JOIN} WHERE e.date = ? "
            "ORDER BY e.created_at ASC, e.rowid ASC, s.timestamp ASC, s.rowid ASC;",
            (date,),
        )
        return _group_exercise_rows(rows)

    async def dates_with_exercises(self, start_date: str, end_date: str) -> List[str]:
        rows = await self.fetch_all(
            "SELECT DISTINCT date FROM exercises WHERE date >= ? AND date <= ? "
            "ORDER BY date ASC;",
            (start_date, end_date),
        )
        return [r[0] for r in rows]


class AsyncSetRepository(AsyncBaseRepository):
    """Asynchronous repository for sets."""

    async def _exercise_type(self, exercise_id: str) -> ExerciseType:
        row = await self.fetch_one(
            "SELECT ed.type FROM exercises e "
            "JOIN exercise_definitions ed ON e.definition_id = ed.id WHERE e.id = ?;",
            (exercise_id,),
        )
        if row is None:
            raise NotFoundError(f"exercise {exercise_id} not found")
        return ExerciseType(row[0])

    async def add(
        self,
        exercise_id: str,
        *,
        weight: Optional[float] = None,
        reps: Optional[int] = None,
        distance: Optional[float] = None,
        time: Optional[int] = None,
        note: Optional[str] = None,
    ) -> LoggedSet:
        exercise_type = await self._exercise_type(exercise_id)
        values = _validate_set_values(
            exercise_type, SetData(weight=weight, reps=reps, distance=distance, time=time)
        )
        history = [
            _row_to_set(r)
            for r in await self.fetch_all(
                f"SELECT {_SET_COLUMNS} FROM sets s "
                "JOIN exercises e ON s.exercise_id = e.id "
                "WHERE e.definition_id = (SELECT definition_id FROM exercises WHERE id = ?) "
                "ORDER BY s.timestamp ASC, s.rowid ASC;",
                (exercise_id,),
            )
        ]
        logged = LoggedSet(
            id=_new_id(),
            exercise_id=exercise_id,
            note=note or None,
            timestamp=_now_ms(),
            **values.as_dict(),
        )
        logged.is_personal_best = SetComparator.is_new_personal_best(
            logged, SetComparator.find_best_set(history, exercise_type), exercise_type
        )
        await self.execute(
            "INSERT INTO sets (id, exercise_id, weight, reps, distance, time, note, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?);",
            (
                logged.id,
                exercise_id,
                logged.weight,
                logged.reps,
                logged.distance,
                logged.time,
                logged.note,
                logged.timestamp,
            ),
        )
        return logged

    async def remove(self, set_id: str) -> None:
        if await self.execute("DELETE FROM sets WHERE id = ?;", (set_id,)) == 0:
            raise NotFoundError(f"set {set_id} not found")

    async def fetch_for_exercise(self, exercise_id: str) -> List[LoggedSet]:
        rows = await self.fetch_all(
            f"SELECT {_SET_COLUMNS} FROM sets s WHERE s.exercise_id = ? "
            "ORDER BY s.timestamp ASC, s.rowid ASC;",
            (exercise_id,),
        )
        return [_row_to_set(r) for r in rows]

    async def update(
        self,
        set_id: str,
        *,
        weight=_UNSET,
        reps=_UNSET,
        distance=_UNSET,
        time=_UNSET,
        note=_UNSET,
    ) -> LoggedSet:
        row = await self.fetch_one(
            f"SELECT {_SET_COLUMNS} FROM sets s WHERE s.id = ?;", (set_id,)
        )
        if row is None:
            raise NotFoundError(f"set {set_id} not found")
        current = _row_to_set(row)
        exercise_type = await self._exercise_type(current.exercise_id)
        values = _validate_set_values(
            exercise_type,
            SetData(
                weight=current.weight if weight is _UNSET else weight,
                reps=current.reps if reps is _UNSET else reps,
                distance=current.distance if distance is _UNSET else distance,
                time=current.time if time is _UNSET else time,
            ),
        )
        new_note = current.note if note is _UNSET else (note or None)
        await self.execute(
            "UPDATE sets SET weight = ?, reps = ?, distance = ?, time = ?, note = ? WHERE id = ?;",
            (values.weight, values.reps, values.distance, values.time, new_note, set_id),
        )
        return LoggedSet(
            id=set_id,
            exercise_id=current.exercise_id,
            note=new_note,
            timestamp=current.timestamp,
            **values.as_dict(),
        )
