from __future__ import annotations
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from algorithms import MathTools, SetComparator
from db import ExerciseDefinitionRepository, SetRepository
from models import ExerciseType, LoggedSet

logger = logging.getLogger(__name__)


class StatisticsService:
    """Compute per-day history and personal bests for charts and lists."""

    def __init__(
        self,
        set_repo: SetRepository,
        definition_repo: ExerciseDefinitionRepository | None = None,
    ) -> None:
        self.sets = set_repo
        self.definitions = definition_repo

    def _grouped_history(
        self,
        name: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Tuple[Optional[ExerciseType], "OrderedDict[str, List[LoggedSet]]"]:
        exercise_type = self.sets.definition_type(name)
        grouped: "OrderedDict[str, List[LoggedSet]]" = OrderedDict()
        if exercise_type is None:
            return None, grouped
        for date, logged in self.sets.fetch_history_by_name(
            name, start_date=start_date, end_date=end_date
        ):
            grouped.setdefault(date, []).append(logged)
        return exercise_type, grouped

    @staticmethod
    def _day_summary(
        date: str, sets: List[LoggedSet], exercise_type: ExerciseType
    ) -> Dict[str, float]:
        weights = [s.weight for s in sets if s.weight is not None]
        reps = [s.reps for s in sets if s.reps is not None]
        distances = [s.distance for s in sets if s.distance is not None]
        times = [s.time for s in sets if s.time is not None]
        if exercise_type is ExerciseType.TIME_SPEED:
            best_time = min(times) if times else 0
        else:
            best_time = max(times) if times else 0
        point = {
            "date": date,
            "best_weight": max(weights) if weights else 0,
            "best_reps": max(reps) if reps else 0,
            "best_distance": max(distances) if distances else 0,
            "best_time": best_time,
            "total_volume": MathTools.volume((s.weight, s.reps) for s in sets),
            "set_count": len(sets),
        }
        if exercise_type is ExerciseType.WEIGHT_REPS:
            estimates = [
                MathTools.epley_1rm(s.weight, s.reps)
                for s in sets
                if s.weight is not None and s.reps is not None
            ]
            estimates = [e for e in estimates if e is not None]
            point["best_estimated_1rm"] = round(max(estimates), 2) if estimates else 0
        return point

    def exercise_history_for_chart(
        self,
        exercise: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Dict[str, float]]:
        """Return one point per training day in ascending date order.

        Each best is taken independently over the day's sets. ``best_time``
        is the fastest time for timed trials and the longest otherwise.
        Unknown exercises give an empty list.
        """
        exercise_type, grouped = self._grouped_history(exercise, start_date, end_date)
        if exercise_type is None:
            return []
        return [self._day_summary(d, sets, exercise_type) for d, sets in grouped.items()]

    def exercise_history_with_sets(
        self,
        exercise: str,
        limit: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Dict[str, object]]:
        """Return per-day summaries with every set, newest day first.

        ``limit`` keeps only the most recent ``limit`` training days.
        """
        exercise_type, grouped = self._grouped_history(exercise, start_date, end_date)
        if exercise_type is None:
            return []
        days = []
        for date in sorted(grouped, reverse=True):
            sets = grouped[date]
            entry = self._day_summary(date, sets, exercise_type)
            entry["sets"] = [s.as_dict() for s in sets]
            days.append(entry)
        if limit is not None:
            days = days[: max(limit, 0)]
        return days

    def personal_best(
        self, exercise: str, exclude_date: Optional[str] = None
    ) -> Optional[Dict[str, object]]:
        exercise_type = self.sets.definition_type(exercise)
        if exercise_type is None:
            return None
        history = self.sets.fetch_history_by_name(exercise, exclude_date=exclude_date)
        best = SetComparator.find_best_set((s for _d, s in history), exercise_type)
        if best is None:
            return None
        date = next(d for d, s in history if s is best)
        record = best.as_dict()
        record.update(
            {
                "exercise": exercise,
                "type": exercise_type.value,
                "date": date,
                "rule": SetComparator.comparison_description(exercise_type),
            }
        )
        return record

    def personal_records(self) -> List[Dict[str, object]]:
        """Return the best set for each exercise that has been logged."""
        if self.definitions is None:
            return []
        records = []
        for definition in self.definitions.used_definitions():
            record = self.personal_best(definition.name)
            if record is not None:
                records.append(record)
        return sorted(records, key=lambda r: r["exercise"])

    def previous_personal_best(self, exercise: str, date: str) -> Optional[Dict[str, object]]:
        """Best set for ``exercise`` ignoring everything logged on ``date``."""
        return self.personal_best(exercise, exclude_date=date)
