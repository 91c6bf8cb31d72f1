import argparse
import datetime
import logging
import sys
from typing import List, Optional

from algorithms import MathTools, WeightConverter
from backup_service import BackupManager
from config import load_settings
from db import Database, ExerciseDefinitionRepository, ExerciseRepository, SetRepository
from errors import StoreError
from export_service import CsvExporter
from import_service import EXERCISE_SETS, ExerciseImporter

logger = logging.getLogger(__name__)


def export_csv(db_path: str, out: Optional[str], export_dir: str = "exports") -> None:
    exporter = CsvExporter(SetRepository(db_path), export_dir)
    result = exporter.export(out)
    print(f"Exported {result.record_count} sets to {result.path}")


def backup_db(db_path: str, backup_dir: str) -> None:
    result = BackupManager(db_path, backup_dir).create_backup()
    print(f"Backup written to {result.path} ({MathTools.format_file_size(result.file_size)})")


def restore_db(src: str, db_path: str, backup_dir: str) -> None:
    result = BackupManager(db_path, backup_dir).restore_from_backup(src)
    if result.safety_copy:
        print(f"Previous database saved to {result.safety_copy}")
    print(f"Restored {db_path} from {src}")


def import_exercises(
    source: str,
    db_path: str,
    mode: str = "merge",
    timeout: float = 30.0,
    token: Optional[str] = None,
) -> None:
    importer = ExerciseImporter(ExerciseDefinitionRepository(db_path), timeout, token)
    if source in EXERCISE_SETS:
        records = importer.fetch_preset(source)
    elif source.startswith(("http://", "https://")):
        records = importer.fetch_remote(source)
    else:
        records = importer.load_file(source)
    summary = importer.import_definitions(records, mode)
    print(
        f"{summary.added} added, {summary.existing} already existing, {summary.failed} failed"
    )
    for name in summary.failed_names:
        print(f"  failed: {name}")


def migrate_db(db_path: str) -> None:
    db = Database(db_path, seed=False)
    print(f"{db_path} is at schema version {db.schema_version()}")


def validate_db(db_path: str) -> bool:
    db = Database(db_path, seed=False)
    valid = db.validate_schema()
    print("Schema is valid" if valid else "Schema is invalid")
    return valid


def demo_data(db_path: str) -> None:
    """Log a few demo sessions when no exercise has been logged yet."""
    definitions = ExerciseDefinitionRepository(db_path)
    exercises = ExerciseRepository(db_path, seed=False)
    sets = SetRepository(db_path, seed=False)
    if exercises.used_definition_ids():
        print("Database already contains workouts")
        return
    today = datetime.date.today()
    sessions = [
        ("Barbell Bench Press", [{"weight": 60.0, "reps": 8}, {"weight": 65.0, "reps": 6}]),
        ("Running", [{"distance": 5.0, "time": 1620}]),
        ("Plank", [{"time": 60}, {"time": 75}]),
    ]
    for offset in (14, 7, 0):
        date = (today - datetime.timedelta(days=offset)).isoformat()
        for name, entries in sessions:
            definition = definitions.fetch_by_name(name)
            if definition is None:
                continue
            ex_id = exercises.get_or_create(definition.id, date)
            for values in entries:
                bumped = {
                    k: v + (14 - offset) / 7 if k in ("weight", "distance") else v
                    for k, v in values.items()
                }
                sets.add(ex_id, **bumped)
    print("Demo data inserted")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Workout store utilities")
    parser.add_argument("--settings", default="settings.yaml")
    parser.add_argument("--db", default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--out", default=None)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--dir", dest="backup_dir", default=None)

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", required=True)
    rst.add_argument("--dir", dest="backup_dir", default=None)

    imp = sub.add_parser("import")
    imp.add_argument("source", help="JSON file path, http(s) URL or one of: small, medium, large")
    imp.add_argument("--mode", choices=["merge", "replace"], default="merge")

    sub.add_parser("migrate")
    sub.add_parser("validate")
    sub.add_parser("demo")

    conv = sub.add_parser("convert")
    conv.add_argument("--value", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb", "km", "miles"], required=True)

    args = parser.parse_args(argv)
    settings = load_settings(args.settings)
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    db_path = args.db or settings.db_path

    try:
        if args.cmd == "export":
            export_csv(db_path, args.out, settings.export_dir)
        elif args.cmd == "backup":
            backup_db(db_path, args.backup_dir or settings.backup_dir)
        elif args.cmd == "restore":
            restore_db(args.src, db_path, args.backup_dir or settings.backup_dir)
        elif args.cmd == "import":
            import_exercises(
                args.source,
                db_path,
                args.mode,
                settings.import_timeout,
                settings.import_token,
            )
        elif args.cmd == "migrate":
            migrate_db(db_path)
        elif args.cmd == "validate":
            return 0 if validate_db(db_path) else 1
        elif args.cmd == "demo":
            demo_data(db_path)
        elif args.cmd == "convert":
            if args.unit == "kg":
                print(f"{args.value:g} kg = {WeightConverter.kg_to_lb(args.value):g} lb")
            elif args.unit == "lb":
                print(f"{args.value:g} lb = {WeightConverter.lb_to_kg(args.value):g} kg")
            elif args.unit == "km":
                print(f"{args.value:g} km = {WeightConverter.km_to_miles(args.value):g} miles")
            else:
                print(f"{args.value:g} miles = {WeightConverter.miles_to_km(args.value):g} km")
    except StoreError as exc:
        logger.error("%s failed: %s", args.cmd, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
