from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional

from errors import InvalidInputError


class ExerciseType(str, Enum):
    """Measurement shape recorded for an exercise definition."""

    WEIGHT_REPS = "weight_reps"
    WEIGHT = "weight"
    REPS = "reps"
    DISTANCE = "distance"
    TIME_DURATION = "time_duration"
    TIME_SPEED = "time_speed"
    DISTANCE_TIME = "distance_time"
    WEIGHT_TIME = "weight_time"
    REPS_TIME = "reps_time"
    WEIGHT_DISTANCE = "weight_distance"
    REPS_DISTANCE = "reps_distance"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]

    @property
    def measurement(self) -> type["Measurement"]:
        return MEASUREMENTS[self]

    @property
    def fields(self) -> tuple[str, ...]:
        return MEASUREMENTS[self].FIELDS

    @property
    def units(self) -> List[str]:
        """Units offered when defining an exercise of this type."""
        fields = self.fields
        if "weight" in fields:
            return ["kg", "lbs"]
        if "distance" in fields:
            return ["km", "miles", "meters", "yards"]
        return ["kg", "lbs", "km", "miles", "meters", "yards"]

    @classmethod
    def parse(cls, value: "str | ExerciseType") -> "ExerciseType":
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(f"unknown exercise type: {value!r}") from None


_TYPE_LABELS = {
    ExerciseType.WEIGHT_REPS: "Weight & Reps",
    ExerciseType.WEIGHT: "Weight Only",
    ExerciseType.REPS: "Reps Only",
    ExerciseType.DISTANCE: "Distance Only",
    ExerciseType.TIME_DURATION: "Duration",
    ExerciseType.TIME_SPEED: "Time Trial",
    ExerciseType.DISTANCE_TIME: "Distance & Time",
    ExerciseType.WEIGHT_TIME: "Weight & Time",
    ExerciseType.REPS_TIME: "Reps & Time",
    ExerciseType.WEIGHT_DISTANCE: "Weight & Distance",
    ExerciseType.REPS_DISTANCE: "Reps & Distance",
}


@dataclass
class SetData:
    """Raw measurement columns of a set; unused columns stay ``None``."""

    weight: Optional[float] = None
    reps: Optional[int] = None
    distance: Optional[float] = None
    time: Optional[int] = None

    def as_dict(self) -> dict:
        return {
            "weight": self.weight,
            "reps": self.reps,
            "distance": self.distance,
            "time": self.time,
        }


@dataclass(frozen=True)
class Measurement:
    """One variant per exercise type.

    ``FIELDS`` lists the columns the variant requires and ``rank_key`` returns
    a tuple where a larger key is a better set.
    """

    FIELDS: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_values(cls, values: SetData) -> Optional["Measurement"]:
        """Build the variant, or ``None`` when a required value is absent."""
        args = [getattr(values, name) for name in cls.FIELDS]
        if any(v is None for v in args):
            return None
        return cls(*args)

    def rank_key(self) -> tuple[float, ...]:
        raise NotImplementedError


@dataclass(frozen=True)
class WeightReps(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("weight", "reps")
    weight: float
    reps: int

    def rank_key(self) -> tuple[float, ...]:
        return (self.weight * self.reps,)


@dataclass(frozen=True)
class WeightOnly(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("weight",)
    weight: float

    def rank_key(self) -> tuple[float, ...]:
        return (self.weight,)


@dataclass(frozen=True)
class RepsOnly(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("reps",)
    reps: int

    def rank_key(self) -> tuple[float, ...]:
        return (self.reps,)


@dataclass(frozen=True)
class DistanceOnly(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("distance",)
    distance: float

    def rank_key(self) -> tuple[float, ...]:
        return (self.distance,)


@dataclass(frozen=True)
class Duration(Measurement):
    """Holds and planks: longer is better."""

    FIELDS: ClassVar[tuple[str, ...]] = ("time",)
    time: int

    def rank_key(self) -> tuple[float, ...]:
        return (self.time,)


@dataclass(frozen=True)
class TimeTrial(Measurement):
    """Sprints: lower elapsed time wins."""

    FIELDS: ClassVar[tuple[str, ...]] = ("time",)
    time: int

    def rank_key(self) -> tuple[float, ...]:
        return (-self.time,)


@dataclass(frozen=True)
class DistanceTime(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("distance", "time")
    distance: float
    time: int

    def rank_key(self) -> tuple[float, ...]:
        return (self.distance, -self.time)


@dataclass(frozen=True)
class WeightTime(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("weight", "time")
    weight: float
    time: int

    def rank_key(self) -> tuple[float, ...]:
        return (self.weight, -self.time)


@dataclass(frozen=True)
class RepsTime(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("reps", "time")
    reps: int
    time: int

    def rank_key(self) -> tuple[float, ...]:
        return (self.reps, -self.time)


@dataclass(frozen=True)
class WeightDistance(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("weight", "distance")
    weight: float
    distance: float

    def rank_key(self) -> tuple[float, ...]:
        return (self.weight * self.distance,)


@dataclass(frozen=True)
class RepsDistance(Measurement):
    FIELDS: ClassVar[tuple[str, ...]] = ("reps", "distance")
    reps: int
    distance: float

    def rank_key(self) -> tuple[float, ...]:
        return (self.reps * self.distance,)


MEASUREMENTS: dict[ExerciseType, type[Measurement]] = {
    ExerciseType.WEIGHT_REPS: WeightReps,
    ExerciseType.WEIGHT: WeightOnly,
    ExerciseType.REPS: RepsOnly,
    ExerciseType.DISTANCE: DistanceOnly,
    ExerciseType.TIME_DURATION: Duration,
    ExerciseType.TIME_SPEED: TimeTrial,
    ExerciseType.DISTANCE_TIME: DistanceTime,
    ExerciseType.WEIGHT_TIME: WeightTime,
    ExerciseType.REPS_TIME: RepsTime,
    ExerciseType.WEIGHT_DISTANCE: WeightDistance,
    ExerciseType.REPS_DISTANCE: RepsDistance,
}


@dataclass
class ExerciseDefinition:
    id: str
    name: str
    category: str
    type: ExerciseType
    unit: str
    description: Optional[str]
    created_at: int

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "type": self.type.value,
            "unit": self.unit,
            "description": self.description,
            "created_at": self.created_at,
        }


@dataclass
class LoggedSet(SetData):
    id: str = ""
    exercise_id: str = ""
    note: Optional[str] = None
    timestamp: int = 0
    is_personal_best: bool = False

    def as_dict(self) -> dict:
        data = super().as_dict()
        data.update(
            {
                "id": self.id,
                "note": self.note,
                "timestamp": self.timestamp,
                "is_personal_best": self.is_personal_best,
            }
        )
        return data


@dataclass
class LoggedExercise:
    """An exercise performed on a date together with its ordered sets."""

    id: str
    definition_id: str
    name: str
    type: ExerciseType
    date: str
    created_at: int
    sets: List[LoggedSet] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "definition_id": self.definition_id,
            "name": self.name,
            "type": self.type.value,
            "date": self.date,
            "created_at": self.created_at,
            "sets": [s.as_dict() for s in self.sets],
        }
