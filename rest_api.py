import dataclasses
import sqlite3
from typing import Dict, List, Optional

from fastapi import Body, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from backup_service import BackupManager
from config import APP_VERSION, load_settings
from db import (
    ExerciseDefinitionRepository,
    ExerciseRepository,
    MaintenanceRepository,
    SetRepository,
)
from errors import (
    BackupCopyError,
    BackupSourceMissingError,
    BackupValidationError,
    EmptyExportError,
    ImportFetchError,
    InvalidInputError,
    MigrationError,
    NotFoundError,
    StoreBusyError,
)
from export_service import CsvExporter
from import_service import EXERCISE_SETS, ExerciseImporter
from models import ExerciseType
from stats_service import StatisticsService

_STATUS_CODES = [
    (InvalidInputError, 400),
    (BackupValidationError, 400),
    (NotFoundError, 404),
    (BackupSourceMissingError, 404),
    (EmptyExportError, 404),
    (StoreBusyError, 409),
    (sqlite3.IntegrityError, 409),
    (ImportFetchError, 502),
    (BackupCopyError, 500),
    (MigrationError, 500),
]

_SET_FIELDS = {"weight", "reps", "distance", "time", "note"}


class WorkoutAPI:
    """Provides REST endpoints over a local workout store."""

    def __init__(
        self,
        db_path: Optional[str] = None,
        yaml_path: str = "settings.yaml",
        *,
        backup_dir: Optional[str] = None,
        export_dir: Optional[str] = None,
    ) -> None:
        self.config = load_settings(yaml_path)
        self.db_path = db_path or self.config.db_path
        seed = self.config.seed_on_init
        self.definitions = ExerciseDefinitionRepository(self.db_path, seed=seed)
        self.exercises = ExerciseRepository(self.db_path, seed=False)
        self.sets = SetRepository(self.db_path, seed=False)
        self.maintenance = MaintenanceRepository(self.db_path, seed=False)
        self.statistics = StatisticsService(self.sets, self.definitions)
        self.backups = BackupManager(self.db_path, backup_dir or self.config.backup_dir)
        self.exporter = CsvExporter(self.sets, export_dir or self.config.export_dir)
        self.importer = ExerciseImporter(
            self.definitions,
            timeout=self.config.import_timeout,
            token=self.config.import_token,
        )
        self.app = FastAPI(title="Workout Store", version=APP_VERSION)
        self._setup_error_handlers()
        self._setup_routes()

    def _setup_error_handlers(self) -> None:
        for exc_type, status in _STATUS_CODES:

            def handler(request: Request, exc: Exception, status: int = status):
                return JSONResponse(status_code=status, content={"detail": str(exc)})

            self.app.add_exception_handler(exc_type, handler)

    def _setup_routes(self) -> None:
        @self.app.get("/health")
        def health():
            return {"status": "ok", "schema_valid": self.definitions.validate_schema()}

        @self.app.get("/types")
        def list_types():
            return [
                {
                    "type": t.value,
                    "label": t.label,
                    "fields": list(t.fields),
                    "units": t.units,
                }
                for t in ExerciseType
            ]

        @self.app.get("/definitions")
        def list_definitions():
            return [d.as_dict() for d in self.definitions.fetch_all()]

        @self.app.post("/definitions")
        def add_definition(
            name: str,
            category: str,
            exercise_type: str,
            unit: str,
            description: str | None = None,
        ):
            def_id = self.definitions.add(name, category, exercise_type, unit, description)
            return {"id": def_id}

        @self.app.get("/definitions/used")
        def used_definitions():
            return [d.as_dict() for d in self.definitions.used_definitions()]

        @self.app.get("/definitions/{definition_id}")
        def get_definition(definition_id: str):
            definition = self.definitions.fetch_by_id(definition_id)
            if definition is None:
                raise HTTPException(status_code=404, detail="definition not found")
            return definition.as_dict()

        @self.app.put("/definitions/{definition_id}")
        def update_definition(definition_id: str, updates: Dict = Body(...)):
            allowed = {"name", "category", "exercise_type", "unit", "description"}
            unknown = set(updates) - allowed
            if unknown:
                raise HTTPException(
                    status_code=400, detail=f"unknown fields: {', '.join(sorted(unknown))}"
                )
            self.definitions.update(definition_id, **updates)
            return {"status": "updated"}

        @self.app.delete("/definitions/{definition_id}")
        def delete_definition(definition_id: str):
            self.definitions.delete(definition_id)
            return {"status": "deleted"}

        @self.app.get("/categories")
        def list_categories():
            return self.definitions.categories()

        @self.app.get("/days/{date}")
        def day_view(date: str, flag_personal_bests: bool = True):
            return [
                e.as_dict()
                for e in self.exercises.exercises_for_date(
                    date, flag_personal_bests=flag_personal_bests
                )
            ]

        @self.app.get("/calendar")
        def calendar(start_date: str, end_date: str):
            return self.exercises.dates_with_exercises(start_date, end_date)

        @self.app.post("/exercises")
        def log_exercise(definition_id: str, date: str):
            return {"id": self.exercises.get_or_create(definition_id, date)}

        @self.app.get("/exercises/last")
        def last_exercise(name: str, exclude_date: str | None = None):
            exercise = self.exercises.last_exercise_by_name(name, exclude_date)
            return exercise.as_dict() if exercise else None

        @self.app.delete("/exercises/{exercise_id}")
        def delete_exercise(exercise_id: str):
            self.exercises.remove(exercise_id)
            return {"status": "deleted"}

        @self.app.get("/exercises/{exercise_id}/sets")
        def list_sets(exercise_id: str):
            return [s.as_dict() for s in self.sets.fetch_for_exercise(exercise_id)]

        @self.app.post("/exercises/{exercise_id}/sets")
        def add_set(
            exercise_id: str,
            weight: float | None = None,
            reps: int | None = None,
            distance: float | None = None,
            time: int | None = None,
            note: str | None = None,
        ):
            logged = self.sets.add(
                exercise_id,
                weight=weight,
                reps=reps,
                distance=distance,
                time=time,
                note=note,
            )
            return logged.as_dict()

        @self.app.put("/sets/{set_id}")
        def update_set(set_id: str, updates: Dict = Body(...)):
            unknown = set(updates) - _SET_FIELDS
            if unknown:
                raise HTTPException(
                    status_code=400, detail=f"unknown fields: {', '.join(sorted(unknown))}"
                )
            return self.sets.update(set_id, **updates).as_dict()

        @self.app.delete("/sets/{set_id}")
        def delete_set(set_id: str):
            self.sets.remove(set_id)
            return {"status": "deleted"}

        @self.app.get("/history/{name}/chart")
        def history_chart(
            name: str, start_date: str | None = None, end_date: str | None = None
        ):
            return self.statistics.exercise_history_for_chart(name, start_date, end_date)

        @self.app.get("/history/{name}")
        def history_with_sets(
            name: str,
            limit: int | None = None,
            start_date: str | None = None,
            end_date: str | None = None,
        ):
            return self.statistics.exercise_history_with_sets(
                name, limit=limit, start_date=start_date, end_date=end_date
            )

        @self.app.get("/personal_best/{name}")
        def personal_best(name: str, exclude_date: str | None = None):
            return self.statistics.personal_best(name, exclude_date)

        @self.app.get("/personal_records")
        def personal_records():
            return self.statistics.personal_records()

        @self.app.post("/backup")
        def create_backup():
            return dataclasses.asdict(self.backups.create_backup())

        @self.app.get("/backups")
        def list_backups():
            return self.backups.list_backups()

        @self.app.post("/restore")
        def restore(path: str):
            return dataclasses.asdict(self.backups.restore_from_backup(path))

        @self.app.get("/export/csv")
        def export_csv():
            return Response(content=self.exporter.to_csv(), media_type="text/csv")

        @self.app.post("/export")
        def export_file():
            return dataclasses.asdict(self.exporter.export())

        @self.app.get("/import/presets")
        def import_presets():
            return {key: dataclasses.asdict(info) for key, info in EXERCISE_SETS.items()}

        @self.app.post("/import")
        def import_definitions(
            mode: str = "merge",
            url: str | None = None,
            preset: str | None = None,
            payload: List[Dict] | None = Body(default=None),
        ):
            if preset:
                records = self.importer.fetch_preset(preset)
            elif url:
                records = self.importer.fetch_remote(url)
            elif payload is not None:
                records = self.importer.parse(payload)
            else:
                raise HTTPException(status_code=400, detail="provide preset, url or payload")
            return dataclasses.asdict(self.importer.import_definitions(records, mode))

        @self.app.post("/maintenance/clear_workout_data")
        def clear_workout_data():
            self.maintenance.clear_workout_data()
            return {"status": "cleared"}

        @self.app.post("/maintenance/reset")
        def reset_database():
            return {"seeded": self.maintenance.clear_database()}

        @self.app.post("/maintenance/purge_orphans")
        def purge_orphans():
            return self.maintenance.purge_orphans()


api = WorkoutAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
