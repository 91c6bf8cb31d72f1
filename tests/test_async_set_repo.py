import os
import sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import AsyncExerciseRepository, AsyncSetRepository, ExerciseDefinitionRepository
from errors import InvalidInputError, NotFoundError


@pytest.mark.asyncio
async def test_async_set_repository_basic(tmp_path):
    db_file = str(tmp_path / "sets.db")
    definitions = ExerciseDefinitionRepository(db_file, seed=False)
    exercise_repo = AsyncExerciseRepository(db_file, seed=False)
    set_repo = AsyncSetRepository(db_file, seed=False)

    def_id = definitions.add("Bench", "Chest", "weight_reps", "kg")
    eid = await exercise_repo.add(def_id, "2024-01-01")
    logged = await set_repo.add(eid, weight=100.0, reps=5)
    assert logged.is_personal_best

    second = await set_repo.add(eid, weight=90.0, reps=5)
    assert not second.is_personal_best

    updated = await set_repo.update(logged.id, weight=120.0)
    assert updated.weight == 120.0
    assert updated.reps == 5

    rows = await set_repo.fetch_for_exercise(eid)
    assert [r.weight for r in rows] == [120.0, 90.0]

    await set_repo.remove(logged.id)
    await set_repo.remove(second.id)
    rows = await set_repo.fetch_for_exercise(eid)
    assert rows == []
    with pytest.raises(NotFoundError):
        await set_repo.remove(second.id)


@pytest.mark.asyncio
async def test_async_exercises_for_date(tmp_path):
    db_file = str(tmp_path / "days.db")
    definitions = ExerciseDefinitionRepository(db_file, seed=False)
    exercise_repo = AsyncExerciseRepository(db_file, seed=False)
    set_repo = AsyncSetRepository(db_file, seed=False)

    plank = definitions.add("Plank", "Core", "time_duration", "seconds")
    run = definitions.add("Run", "Cardio", "distance_time", "km")
    plank_ex = await exercise_repo.add(plank, "2024-05-01")
    await exercise_repo.add(run, "2024-05-01")
    await set_repo.add(plank_ex, time=60)

    day = await exercise_repo.exercises_for_date("2024-05-01")
    assert [e.name for e in day] == ["Plank", "Run"]
    assert day[0].sets[0].time == 60
    assert day[1].sets == []

    with pytest.raises(InvalidInputError):
        await set_repo.add(plank_ex, time=60, distance=1.0)

    assert await exercise_repo.dates_with_exercises("2024-04-01", "2024-05-31") == ["2024-05-01"]

    await exercise_repo.remove(plank_ex)
    day = await exercise_repo.exercises_for_date("2024-05-01")
    assert [e.name for e in day] == ["Run"]


@pytest.mark.asyncio
async def test_async_set_rejects_non_finite(tmp_path):
    db_file = str(tmp_path / "finite.db")
    definitions = ExerciseDefinitionRepository(db_file, seed=False)
    exercise_repo = AsyncExerciseRepository(db_file, seed=False)
    set_repo = AsyncSetRepository(db_file, seed=False)

    def_id = definitions.add("Bench", "Chest", "weight_reps", "kg")
    eid = await exercise_repo.add(def_id, "2024-01-01")
    with pytest.raises(InvalidInputError):
        await set_repo.add(eid, weight=float("nan"), reps=5)
    with pytest.raises(InvalidInputError):
        await set_repo.add(eid, weight=100.0, reps=float("inf"))
    logged = await set_repo.add(eid, weight=100.0, reps=5)
    with pytest.raises(InvalidInputError):
        await set_repo.update(logged.id, weight=float("inf"))
    rows = await set_repo.fetch_for_exercise(eid)
    assert [(r.weight, r.reps) for r in rows] == [(100.0, 5)]
