import os
import sqlite3
import sys
import threading
import unittest

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    Database,
    ExerciseDefinitionRepository,
    ExerciseRepository,
    MaintenanceRepository,
    SetRepository,
    write_lock,
)
from errors import InvalidInputError, NotFoundError, StoreBusyError
from models import ExerciseType
from seed_data import INITIAL_EXERCISE_DEFINITIONS


class StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_store.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.definitions = ExerciseDefinitionRepository(self.db_path, seed=False)
        self.exercises = ExerciseRepository(self.db_path, seed=False)
        self.sets = SetRepository(self.db_path, seed=False)
        self.maintenance = MaintenanceRepository(self.db_path, seed=False)
        self.bench = self.definitions.add("Bench Press", "Chest", "weight_reps", "kg")
        self.sprint = self.definitions.add("Sprint", "Cardio", "time_speed", "seconds")

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def _count(self, table: str) -> int:
        return self.maintenance.counts()[table]

    def test_definition_crud(self) -> None:
        definition = self.definitions.fetch_by_name("Bench Press")
        self.assertEqual(definition.id, self.bench)
        self.assertEqual(definition.type, ExerciseType.WEIGHT_REPS)
        self.definitions.update(self.bench, category="Push", description="Flat bench")
        updated = self.definitions.fetch_by_id(self.bench)
        self.assertEqual(updated.category, "Push")
        self.assertEqual(updated.description, "Flat bench")
        self.assertEqual([d.name for d in self.definitions.fetch_all()], ["Bench Press", "Sprint"])
        self.assertEqual(self.definitions.categories(), ["Cardio", "Push"])
        with self.assertRaises(NotFoundError):
            self.definitions.update("missing", name="x")

    def test_definition_validation(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.definitions.add("Row", "Back", "pull", "kg")
        with self.assertRaises(InvalidInputError):
            self.definitions.add("  ", "Back", "reps", "kg")
        with self.assertRaises(sqlite3.IntegrityError):
            self.definitions.add("Bench Press", "Chest", "weight_reps", "kg")
        self.assertEqual(self._count("exercise_definitions"), 2)

    def test_delete_definition_cascades(self) -> None:
        for date in ("2024-01-01", "2024-01-03"):
            ex_id = self.exercises.add(self.bench, date)
            self.sets.add(ex_id, weight=100, reps=5)
            self.sets.add(ex_id, weight=100, reps=4)
        self.definitions.delete(self.bench)
        self.assertIsNone(self.definitions.fetch_by_id(self.bench))
        self.assertEqual(self._count("exercises"), 0)
        self.assertEqual(self._count("sets"), 0)
        self.assertEqual(self.exercises.exercises_for_date("2024-01-01"), [])
        with self.assertRaises(NotFoundError):
            self.definitions.delete(self.bench)

    def test_exercises_for_date_includes_empty_exercises(self) -> None:
        bench_ex = self.exercises.add(self.bench, "2024-02-01")
        self.exercises.add(self.sprint, "2024-02-01")
        self.sets.add(bench_ex, weight=60, reps=10, timestamp=2000)
        self.sets.add(bench_ex, weight=70, reps=8, timestamp=1000)
        day = self.exercises.exercises_for_date("2024-02-01")
        self.assertEqual([e.name for e in day], ["Bench Press", "Sprint"])
        self.assertEqual([s.weight for s in day[0].sets], [70.0, 60.0])
        self.assertEqual(day[1].sets, [])

    def test_get_or_create(self) -> None:
        first = self.exercises.get_or_create(self.bench, "2024-03-01")
        again = self.exercises.get_or_create(self.bench, "2024-03-01")
        self.assertEqual(first, again)
        found = self.exercises.fetch_for_date_by_definition(self.bench, "2024-03-01")
        self.assertEqual(found.id, first)
        self.assertIsNone(self.exercises.fetch_for_date_by_definition(self.sprint, "2024-03-01"))
        with self.assertRaises(InvalidInputError):
            self.exercises.get_or_create(self.bench, "03/01/2024")

    def test_dates_and_last_exercise(self) -> None:
        for date, weight in (("2024-01-05", 80), ("2024-01-10", 90), ("2024-01-20", 95)):
            ex_id = self.exercises.add(self.bench, date)
            self.sets.add(ex_id, weight=weight, reps=5)
        self.exercises.add(self.sprint, "2024-02-01")
        self.assertEqual(
            self.exercises.dates_with_exercises("2024-01-06", "2024-01-31"),
            ["2024-01-10", "2024-01-20"],
        )
        last = self.exercises.last_exercise_by_name("Bench Press")
        self.assertEqual(last.date, "2024-01-20")
        self.assertEqual(last.sets[0].weight, 95.0)
        earlier = self.exercises.last_exercise_by_name("Bench Press", exclude_date="2024-01-20")
        self.assertEqual(earlier.date, "2024-01-10")
        self.assertIsNone(self.exercises.last_exercise_by_name("Unknown"))
        self.assertEqual(sorted(self.exercises.used_definition_ids()), sorted([self.bench, self.sprint]))
        self.assertEqual(
            [d.name for d in self.definitions.used_definitions()], ["Bench Press", "Sprint"]
        )

    def test_set_validation(self) -> None:
        ex_id = self.exercises.add(self.bench, "2024-01-01")
        with self.assertRaises(InvalidInputError):
            self.sets.add(ex_id, weight=100)
        with self.assertRaises(InvalidInputError):
            self.sets.add(ex_id, weight=100, reps=5, time=30)
        with self.assertRaises(InvalidInputError):
            self.sets.add(ex_id, weight=-5, reps=5)
        with self.assertRaises(InvalidInputError):
            self.sets.add(ex_id, weight=50, reps=2.5)
        with self.assertRaises(NotFoundError):
            self.sets.add("missing", weight=100, reps=5)
        self.assertEqual(self._count("sets"), 0)

    def test_set_rejects_non_finite_values(self) -> None:
        ex_id = self.exercises.add(self.bench, "2024-01-01")
        for values in (
            {"weight": float("nan"), "reps": 5},
            {"weight": float("inf"), "reps": 5},
            {"weight": 100, "reps": float("inf")},
            {"weight": 100, "reps": float("nan")},
        ):
            with self.assertRaises(InvalidInputError):
                self.sets.add(ex_id, **values)
        run = self.definitions.add("Run", "Cardio", "distance_time", "km")
        run_ex = self.exercises.add(run, "2024-01-01")
        with self.assertRaises(InvalidInputError):
            self.sets.add(run_ex, distance=float("-inf"), time=600)
        with self.assertRaises(InvalidInputError):
            self.sets.add(run_ex, distance=5, time=float("inf"))
        self.assertEqual(self._count("sets"), 0)

        logged = self.sets.add(ex_id, weight=100, reps=5)
        with self.assertRaises(InvalidInputError):
            self.sets.update(logged.id, weight=float("nan"))
        self.assertEqual(self.sets.fetch_detail(logged.id).weight, 100.0)

    def test_type_change_blocked_with_history(self) -> None:
        self.definitions.update(self.sprint, exercise_type="time_duration")
        self.assertEqual(
            self.definitions.fetch_by_id(self.sprint).type, ExerciseType.TIME_DURATION
        )
        ex_id = self.exercises.add(self.bench, "2024-01-01")
        logged = self.sets.add(ex_id, weight=100, reps=5)
        with self.assertRaises(InvalidInputError):
            self.definitions.update(self.bench, exercise_type="distance")
        with self.assertRaises(InvalidInputError):
            self.definitions.update(self.bench, unit="lbs", exercise_type="reps")
        definition = self.definitions.fetch_by_id(self.bench)
        self.assertEqual((definition.type, definition.unit), (ExerciseType.WEIGHT_REPS, "kg"))
        self.definitions.update(self.bench, exercise_type="weight_reps", unit="lbs")
        self.assertEqual(self.sets.personal_best_for_exercise("Bench Press").id, logged.id)
        self.assertEqual(self.sets.update(logged.id, note="x").note, "x")

    def test_set_update_and_remove(self) -> None:
        ex_id = self.exercises.add(self.bench, "2024-01-01")
        logged = self.sets.add(ex_id, weight=100, reps=5, note="easy")
        updated = self.sets.update(logged.id, reps=6)
        self.assertEqual((updated.weight, updated.reps, updated.note), (100.0, 6, "easy"))
        self.sets.update(logged.id, note=None)
        self.assertIsNone(self.sets.fetch_detail(logged.id).note)
        with self.assertRaises(InvalidInputError):
            self.sets.update(logged.id, reps=None)
        self.sets.remove(logged.id)
        self.assertEqual(self.sets.fetch_for_exercise(ex_id), [])
        with self.assertRaises(NotFoundError):
            self.sets.remove(logged.id)

    def test_personal_best_on_write(self) -> None:
        ex_id = self.exercises.add(self.bench, "2024-01-01")
        self.assertTrue(self.sets.add(ex_id, weight=100, reps=5).is_personal_best)
        self.assertFalse(self.sets.add(ex_id, weight=100, reps=5).is_personal_best)
        self.assertTrue(self.sets.add(ex_id, weight=80, reps=8).is_personal_best)
        self.assertFalse(self.sets.add(ex_id, weight=110, reps=4).is_personal_best)

    def test_personal_best_for_exercise(self) -> None:
        self.assertIsNone(self.sets.personal_best_for_exercise("Sprint"))
        day1 = self.exercises.add(self.sprint, "2024-01-01")
        day2 = self.exercises.add(self.sprint, "2024-01-02")
        self.sets.add(day1, time=14)
        self.sets.add(day2, time=12)
        self.assertEqual(self.sets.personal_best_for_exercise("Sprint").time, 12)
        self.assertEqual(
            self.sets.personal_best_for_exercise("Sprint", exclude_date="2024-01-02").time, 14
        )
        self.assertIsNone(self.sets.personal_best_for_exercise("Nope"))

    def test_flagged_day_view(self) -> None:
        old = self.exercises.add(self.bench, "2024-01-01")
        self.sets.add(old, weight=100, reps=5)
        today = self.exercises.add(self.bench, "2024-01-08")
        self.sets.add(today, weight=90, reps=5, timestamp=1)
        self.sets.add(today, weight=110, reps=5, timestamp=2)
        self.sets.add(today, weight=105, reps=5, timestamp=3)
        day = self.exercises.exercises_for_date("2024-01-08", flag_personal_bests=True)
        self.assertEqual([s.is_personal_best for s in day[0].sets], [False, True, False])
        plain = self.exercises.exercises_for_date("2024-01-08")
        self.assertFalse(any(s.is_personal_best for s in plain[0].sets))

    def test_remove_exercise(self) -> None:
        ex_id = self.exercises.add(self.bench, "2024-01-01")
        self.sets.add(ex_id, weight=100, reps=5)
        self.exercises.remove(ex_id)
        self.assertEqual(self._count("sets"), 0)
        with self.assertRaises(NotFoundError):
            self.exercises.remove(ex_id)

    def test_all_with_sets(self) -> None:
        a = self.exercises.add(self.bench, "2024-01-01")
        self.exercises.add(self.sprint, "2024-01-02")
        self.sets.add(a, weight=50, reps=5)
        everything = self.exercises.all_with_sets()
        self.assertEqual([e.date for e in everything], ["2024-01-02", "2024-01-01"])
        self.assertEqual(len(everything[1].sets), 1)

    def test_clear_workout_data_keeps_definitions(self) -> None:
        ex_id = self.exercises.add(self.bench, "2024-01-01")
        self.sets.add(ex_id, weight=50, reps=5)
        self.maintenance.clear_workout_data()
        self.assertEqual(self._count("sets"), 0)
        self.assertEqual(self._count("exercises"), 0)
        self.assertEqual(self._count("exercise_definitions"), 2)

    def test_clear_database_reseeds(self) -> None:
        self.exercises.add(self.bench, "2024-01-01")
        seeded = self.maintenance.clear_database()
        self.assertEqual(seeded, len(INITIAL_EXERCISE_DEFINITIONS))
        self.assertIsNone(self.definitions.fetch_by_name("Bench Press"))
        self.assertEqual(self._count("exercises"), 0)
        self.assertEqual(self._count("exercise_definitions"), len(INITIAL_EXERCISE_DEFINITIONS))

    def test_purge_orphans(self) -> None:
        ex_id = self.exercises.add(self.bench, "2024-01-01")
        self.sets.add(ex_id, weight=50, reps=5)
        conn = sqlite3.connect(self.db_path)
        conn.execute("DELETE FROM exercises")
        conn.commit()
        conn.close()
        self.assertEqual(self.maintenance.purge_orphans(), {"sets": 1, "exercises": 0})
        self.assertGreater(self.maintenance.database_size(), 0)

    def test_concurrent_write_is_rejected(self) -> None:
        with write_lock(self.db_path):
            with self.assertRaises(StoreBusyError):
                self.definitions.add("Row", "Back", "weight_reps", "kg")
            # reads are not locked
            self.assertIsNotNone(self.definitions.fetch_by_name("Sprint"))
        self.definitions.add("Row", "Back", "weight_reps", "kg")

    def test_lock_from_another_thread(self) -> None:
        entered = threading.Event()
        release = threading.Event()

        def hold():
            with write_lock(self.db_path):
                entered.set()
                release.wait(5)

        worker = threading.Thread(target=hold)
        worker.start()
        entered.wait(5)
        try:
            with self.assertRaises(StoreBusyError):
                self.exercises.add(self.bench, "2024-01-01")
        finally:
            release.set()
            worker.join()


def test_seeding_is_idempotent(tmp_path):
    db_file = str(tmp_path / "seed.db")
    Database(db_file)
    Database(db_file)
    repo = ExerciseDefinitionRepository(db_file)
    assert len(repo.fetch_all()) == len(INITIAL_EXERCISE_DEFINITIONS)
    assert {d.type for d in repo.fetch_all()} == set(ExerciseType)


def test_foreign_keys_enforced(tmp_path):
    db_file = str(tmp_path / "fk.db")
    exercises = ExerciseRepository(db_file, seed=False)
    with pytest.raises(sqlite3.IntegrityError):
        exercises.add("no-such-definition", "2024-01-01")
