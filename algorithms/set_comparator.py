from enum import IntEnum
from typing import Iterable, Optional, TypeVar

from models import ExerciseType, Measurement, SetData

S = TypeVar("S", bound=SetData)


class Ordering(IntEnum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


_DESCRIPTIONS = {
    ExerciseType.WEIGHT_REPS: "Higher weight × reps (total work) is better.",
    ExerciseType.WEIGHT: "Higher weight is better.",
    ExerciseType.REPS: "More reps is better.",
    ExerciseType.DISTANCE: "Longer distance is better.",
    ExerciseType.TIME_DURATION: "Longer duration is better (holds/planks).",
    ExerciseType.TIME_SPEED: "Faster time is better (sprints).",
    ExerciseType.DISTANCE_TIME: "Longer distance is better. If tied, faster time wins.",
    ExerciseType.WEIGHT_TIME: "Heavier weight is better. If tied, shorter time wins.",
    ExerciseType.REPS_TIME: "More reps is better. If tied, shorter time wins.",
    ExerciseType.WEIGHT_DISTANCE: "Higher weight × distance is better.",
    ExerciseType.REPS_DISTANCE: "Higher reps × distance is better.",
}


class SetComparator:
    """Rank sets of one exercise type.

    A set missing any value its type requires is unranked: it never beats a
    ranked set and never becomes a personal best. Two unranked sets compare
    equal.
    """

    @staticmethod
    def measurement(values: SetData, exercise_type: ExerciseType) -> Optional[Measurement]:
        return ExerciseType.parse(exercise_type).measurement.from_values(values)

    @classmethod
    def compare_sets(cls, a: SetData, b: SetData, exercise_type: ExerciseType) -> Ordering:
        """Return whether ``a`` is better than, equal to or worse than ``b``."""
        ma = cls.measurement(a, exercise_type)
        mb = cls.measurement(b, exercise_type)
        if ma is None or mb is None:
            if ma is None and mb is None:
                return Ordering.EQUAL
            return Ordering.LESS if ma is None else Ordering.GREATER
        ka, kb = ma.rank_key(), mb.rank_key()
        if ka > kb:
            return Ordering.GREATER
        if ka < kb:
            return Ordering.LESS
        return Ordering.EQUAL

    @classmethod
    def is_new_personal_best(
        cls,
        candidate: SetData,
        current_best: Optional[SetData],
        exercise_type: ExerciseType,
    ) -> bool:
        if cls.measurement(candidate, exercise_type) is None:
            return False
        if current_best is None:
            return True
        return cls.compare_sets(candidate, current_best, exercise_type) == Ordering.GREATER

    @classmethod
    def find_best_set(cls, sets: Iterable[S], exercise_type: ExerciseType) -> Optional[S]:
        """Reduce ``sets`` to the best ranked one; ties keep the incumbent."""
        best: Optional[S] = None
        for current in sets:
            if cls.is_new_personal_best(current, best, exercise_type):
                best = current
        return best

    @classmethod
    def flag_personal_bests(
        cls,
        sets: Iterable[S],
        prior_best: Optional[SetData],
        exercise_type: ExerciseType,
    ) -> list:
        """Mark each set that beats ``prior_best`` and every set before it."""
        best = prior_best
        flagged = []
        for current in sets:
            current.is_personal_best = cls.is_new_personal_best(current, best, exercise_type)
            if current.is_personal_best:
                best = current
            flagged.append(current)
        return flagged

    @classmethod
    def find_best_set_id(cls, sets: Iterable[S], exercise_type: ExerciseType) -> Optional[str]:
        best = cls.find_best_set(sets, exercise_type)
        return getattr(best, "id", None) if best is not None else None

    @staticmethod
    def comparison_description(exercise_type: ExerciseType) -> str:
        return _DESCRIPTIONS[ExerciseType.parse(exercise_type)]
