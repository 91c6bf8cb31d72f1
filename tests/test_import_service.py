import json
import os
import sys

import pytest
import requests

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import import_service
from db import ExerciseDefinitionRepository, ExerciseRepository, SetRepository
from errors import ImportFetchError, InvalidInputError
from import_service import ExerciseImporter

PAYLOAD = [
    {"name": "squats", "category": "Legs", "type": "weight_reps", "unit": "kg"},
    {"name": "Box Jumps", "category": "Legs", "type": "reps", "unit": "reps"},
    {"name": "box jumps ", "category": "Legs", "type": "reps", "unit": "reps"},
    {
        "name": "Rowing",
        "category": "Cardio",
        "type": "distance_time",
        "unit": "km",
        "description": "Erg",
    },
]


@pytest.fixture
def repo(tmp_path):
    definitions = ExerciseDefinitionRepository(str(tmp_path / "import.db"), seed=False)
    definitions.add("Squats", "Legs", "weight_reps", "kg")
    return definitions


def test_parse_rejects_whole_payload(repo):
    importer = ExerciseImporter(repo)
    bad = PAYLOAD + [{"name": "No Type", "category": "X", "unit": "kg"}]
    with pytest.raises(InvalidInputError, match="1 exercises missing"):
        importer.parse(bad)
    with pytest.raises(InvalidInputError):
        importer.parse([{"name": "Fly", "category": "Chest", "type": "flying", "unit": "kg"}])
    with pytest.raises(InvalidInputError):
        importer.parse({"name": "not a list"})
    with pytest.raises(InvalidInputError):
        importer.parse("{broken json")
    assert len(repo.fetch_all()) == 1


def test_preview_dedupes_case_insensitively(repo):
    importer = ExerciseImporter(repo)
    preview = importer.preview(importer.parse(PAYLOAD))
    assert preview.existing == ["squats"]
    assert [r.name for r in preview.to_add] == ["Box Jumps", "Rowing"]
    assert preview.total == 3


def test_merge_skips_existing_names(repo):
    importer = ExerciseImporter(repo)
    summary = importer.import_definitions(importer.parse(PAYLOAD), "merge")
    assert summary.added == 2
    assert summary.existing == 1
    assert summary.failed == 0
    names = [d.name for d in repo.fetch_all()]
    assert names == ["Box Jumps", "Rowing", "Squats"]
    assert repo.fetch_by_name("Rowing").description == "Erg"


def test_merge_continues_past_failures(repo, monkeypatch):
    importer = ExerciseImporter(repo)
    original_add = repo.add

    def flaky_add(name, *args, **kwargs):
        if name == "Box Jumps":
            raise InvalidInputError("rejected")
        return original_add(name, *args, **kwargs)

    monkeypatch.setattr(repo, "add", flaky_add)
    summary = importer.import_definitions(importer.parse(PAYLOAD), "merge")
    assert summary.added == 1
    assert summary.failed == 1
    assert summary.failed_names == ["Box Jumps"]


def test_replace_wipes_and_reinserts(repo):
    exercises = ExerciseRepository(repo.db_path, seed=False)
    sets = SetRepository(repo.db_path, seed=False)
    ex_id = exercises.add(repo.fetch_by_name("Squats").id, "2024-01-01")
    sets.add(ex_id, weight=100, reps=5)

    importer = ExerciseImporter(repo)
    summary = importer.import_definitions(importer.parse(PAYLOAD), "replace")
    assert summary.added == 3
    assert [d.name for d in repo.fetch_all()] == ["Box Jumps", "Rowing", "squats"]
    assert exercises.all_with_sets() == []


def test_replace_failure_leaves_store_intact(repo):
    importer = ExerciseImporter(repo)
    records = importer.parse(PAYLOAD)
    records[1].unit = "   "
    with pytest.raises(InvalidInputError):
        importer.import_definitions(records, "replace")
    assert [d.name for d in repo.fetch_all()] == ["Squats"]


def test_unknown_mode(repo):
    with pytest.raises(InvalidInputError):
        ExerciseImporter(repo).import_definitions([], "append")


def test_load_file(repo, tmp_path):
    path = tmp_path / "set.json"
    path.write_text(json.dumps(PAYLOAD), encoding="utf-8")
    records = ExerciseImporter(repo).load_file(str(path))
    assert len(records) == 4


class FakeResponse:
    def __init__(self, payload, status=200):
        self.text = json.dumps(payload)
        self.content = self.text.encode()
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_fetch_remote(repo, monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen.update(url=url, headers=headers, timeout=timeout)
        return FakeResponse(PAYLOAD)

    monkeypatch.setattr(import_service.requests, "get", fake_get)
    importer = ExerciseImporter(repo, timeout=5, token="abc")
    records = importer.fetch_remote("https://example.com/set.json")
    assert len(records) == 4
    assert seen["timeout"] == 5
    assert seen["headers"]["Authorization"] == "Bearer abc"


def test_fetch_remote_errors_do_not_touch_store(repo, monkeypatch):
    def timeout_get(url, headers=None, timeout=None):
        raise requests.Timeout("slow")

    monkeypatch.setattr(import_service.requests, "get", timeout_get)
    importer = ExerciseImporter(repo, timeout=30)
    with pytest.raises(ImportFetchError, match="timed out after 30 seconds"):
        importer.fetch_remote("https://example.com/set.json")

    monkeypatch.setattr(
        import_service.requests, "get", lambda url, headers=None, timeout=None: FakeResponse([], 404)
    )
    with pytest.raises(ImportFetchError):
        importer.fetch_remote("https://example.com/missing.json")
    assert [d.name for d in repo.fetch_all()] == ["Squats"]


def test_fetch_preset(repo, monkeypatch):
    seen = []

    def fake_get(url, headers=None, timeout=None):
        seen.append(url)
        return FakeResponse(PAYLOAD)

    monkeypatch.setattr(import_service.requests, "get", fake_get)
    importer = ExerciseImporter(repo)
    records = importer.fetch_preset("medium")
    assert len(records) == 4
    assert seen == [import_service.EXERCISE_SETS["medium"].url]
    assert seen[0].endswith("exercises_medium.json")
    with pytest.raises(InvalidInputError, match="unknown exercise set"):
        importer.fetch_preset("huge")
    assert len(seen) == 1
