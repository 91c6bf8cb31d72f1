import csv
import datetime
import io
import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from algorithms import MathTools
from db import SetRepository
from errors import EmptyExportError
from models import ExerciseType

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "Date",
    "Exercise",
    "Category",
    "Type",
    "Set #",
    "Weight",
    "Reps",
    "Distance",
    "Time (seconds)",
    "Time (formatted)",
]


@dataclass
class ExportResult:
    path: str
    file_name: str
    record_count: int


def _number(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _type_label(value: str) -> str:
    try:
        return ExerciseType(value).label
    except ValueError:
        return value


class CsvExporter:
    """Export every logged set as one CSV row."""

    def __init__(self, set_repo: SetRepository, export_dir: str = "exports") -> None:
        self.sets = set_repo
        self.export_dir = export_dir

    def rows(self) -> List[List[str]]:
        """Rows newest date first; ``Set #`` restarts for each date and exercise."""
        rows: List[List[str]] = []
        current_key = None
        set_number = 0
        for date, name, category, etype, weight, reps, distance, secs in (
            self.sets.fetch_export_rows()
        ):
            key = (date, name)
            if key != current_key:
                current_key = key
                set_number = 1
            else:
                set_number += 1
            rows.append(
                [
                    date,
                    name,
                    category,
                    _type_label(etype),
                    str(set_number),
                    _number(weight),
                    _number(reps),
                    _number(distance),
                    _number(secs),
                    MathTools.format_duration(secs) if secs else "",
                ]
            )
        return rows

    def to_csv(self, rows: Optional[List[List[str]]] = None) -> str:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        writer.writerows(self.rows() if rows is None else rows)
        return output.getvalue()

    @staticmethod
    def export_file_name(today: Optional[datetime.date] = None) -> str:
        today = today or datetime.date.today()
        return f"workout-export-{today.isoformat()}.csv"

    def export(self, path: Optional[str] = None) -> ExportResult:
        """Write the CSV file and return where it went."""
        rows = self.rows()
        if not rows:
            raise EmptyExportError("no workout data to export")
        if path is None:
            os.makedirs(self.export_dir, exist_ok=True)
            path = os.path.join(self.export_dir, self.export_file_name())
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(self.to_csv(rows))
        logger.info("Exported %d sets to %s", len(rows), path)
        return ExportResult(path=path, file_name=os.path.basename(path), record_count=len(rows))
