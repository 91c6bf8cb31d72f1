"""Bulk import of exercise definitions from a JSON list."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

from db import ExerciseDefinitionRepository
from errors import ImportFetchError, InvalidInputError
from models import ExerciseType

logger = logging.getLogger(__name__)

IMPORT_MODES = ("merge", "replace")

_EXERCISE_DATA_URL = (
    "https://raw.githubusercontent.com/Fybre/workout-notes/refs/heads/main/exercise_data"
)


@dataclass(frozen=True)
class ExerciseSetInfo:
    """A published exercise set that can be imported by name."""

    name: str
    description: str
    count: int
    url: str


EXERCISE_SETS = {
    "small": ExerciseSetInfo(
        "Small Set", "Essential exercises", 25, f"{_EXERCISE_DATA_URL}/exercises_small.json"
    ),
    "medium": ExerciseSetInfo(
        "Medium Set", "Standard workout exercises", 80, f"{_EXERCISE_DATA_URL}/exercises_medium.json"
    ),
    "large": ExerciseSetInfo(
        "Large Set", "Comprehensive exercise library", 250, f"{_EXERCISE_DATA_URL}/exercises_large.json"
    ),
}



class ExerciseRecord(BaseModel):
    name: str
    category: str
    type: ExerciseType
    unit: str
    description: Optional[str] = None

    @field_validator("name", "category", "unit")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @property
    def key(self) -> str:
        return self.name.lower().strip()

    def as_record(self) -> dict:
        return {
            "name": self.name,
            "category": self.category,
            "type": self.type.value,
            "unit": self.unit,
            "description": self.description,
        }


_RECORDS = TypeAdapter(List[ExerciseRecord])


@dataclass
class ImportPreview:
    to_add: List[ExerciseRecord] = field(default_factory=list)
    existing: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.to_add) + len(self.existing)


@dataclass
class ImportSummary:
    mode: str
    added: int = 0
    failed: int = 0
    existing: int = 0
    failed_names: List[str] = field(default_factory=list)


def _dedupe(records: Iterable[ExerciseRecord]) -> List[ExerciseRecord]:
    seen = set()
    unique = []
    for record in records:
        if record.key in seen:
            continue
        seen.add(record.key)
        unique.append(record)
    return unique


class ExerciseImporter:
    """Validate exercise payloads and merge or replace the catalog with them."""

    def __init__(
        self,
        definition_repo: ExerciseDefinitionRepository,
        timeout: float = 30.0,
        token: Optional[str] = None,
    ) -> None:
        self.definitions = definition_repo
        self.timeout = timeout
        self.token = token

    @staticmethod
    def parse(payload) -> List[ExerciseRecord]:
        """Validate the whole payload; one bad record rejects all of it."""
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as exc:
                raise InvalidInputError(f"invalid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise InvalidInputError("expected a list of exercises")
        try:
            return _RECORDS.validate_python(payload)
        except ValidationError as exc:
            bad = {err["loc"][0] for err in exc.errors() if err["loc"]}
            raise InvalidInputError(
                f"{len(bad)} exercises missing required fields (name, category, type, unit)"
            ) from exc

    def load_file(self, path: str) -> List[ExerciseRecord]:
        with open(path, "r", encoding="utf-8") as fh:
            return self.parse(fh.read())

    def fetch_remote(self, url: str) -> List[ExerciseRecord]:
        """Download and validate a payload; the store is never touched here."""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            resp = requests.get(url, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.Timeout as exc:
            raise ImportFetchError(f"request timed out after {self.timeout:g} seconds") from exc
        except requests.RequestException as exc:
            raise ImportFetchError(f"failed to fetch {url}: {exc}") from exc
        logger.info("Fetched exercise set from %s (%d bytes)", url, len(resp.content))
        return self.parse(resp.text)

    def fetch_preset(self, key: str) -> List[ExerciseRecord]:
        """Download one of the published exercise sets by its key."""
        info = EXERCISE_SETS.get(key)
        if info is None:
            raise InvalidInputError(
                f"unknown exercise set {key!r}; choose from {', '.join(EXERCISE_SETS)}"
            )
        return self.fetch_remote(info.url)


    def preview(self, records: Iterable[ExerciseRecord]) -> ImportPreview:
        existing = {d.name.lower().strip() for d in self.definitions.fetch_all()}
        result = ImportPreview()
        for record in _dedupe(records):
            if record.key in existing:
                result.existing.append(record.name)
            else:
                result.to_add.append(record)
        return result

    def import_definitions(
        self, records: Iterable[ExerciseRecord], mode: str = "merge"
    ) -> ImportSummary:
        if mode not in IMPORT_MODES:
            raise InvalidInputError(f"mode must be one of {', '.join(IMPORT_MODES)}")
        records = list(records)
        if mode == "replace":
            unique = _dedupe(records)
            added = self.definitions.replace_all(r.as_record() for r in unique)
            logger.info("Replaced exercise catalog with %d definitions", added)
            return ImportSummary(mode=mode, added=added)

        preview = self.preview(records)
        summary = ImportSummary(mode=mode, existing=len(preview.existing))
        for record in preview.to_add:
            try:
                self.definitions.add(
                    record.name,
                    record.category,
                    record.type.value,
                    record.unit,
                    record.description,
                )
                summary.added += 1
            except (sqlite3.IntegrityError, InvalidInputError) as exc:
                logger.warning("Failed to import %s: %s", record.name, exc)
                summary.failed += 1
                summary.failed_names.append(record.name)
        logger.info(
            "Import finished: %d added, %d failed, %d already existing",
            summary.added,
            summary.failed,
            summary.existing,
        )
        return summary
