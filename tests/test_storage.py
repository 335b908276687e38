import json
from pathlib import Path

import pytest

from specflow.domain.errors import (
    ConfigNotFoundError,
    PathOutsideRepositoryError,
    ProjectNotFoundError,
    UseCaseNotFoundError,
    ValidationError,
)
from specflow.domain.states import UseCaseStatus
from specflow.storage.config import ProjectConfigStore
from specflow.storage.files import read_repo_file, resolve_in_repo, write_repo_file
from specflow.storage.projects import ProjectStore
from specflow.storage.schemas import CamelBody

from conftest import USE_CASE_ID


def test_project_store_round_trip(tmp_path: Path) -> None:
    store = ProjectStore(tmp_path / "projects.json")

    first = store.add_project("A", "/repo/a", "npm test")
    second = store.add_project("B", "/repo/b", "pytest -q")

    assert first.id != second.id
    assert [p.name for p in store.list_projects()] == ["A", "B"]
    assert store.get_project(second.id).test_command == "pytest -q"
    saved = json.loads((tmp_path / "projects.json").read_text(encoding="utf-8"))
    assert saved[0] == {"id": first.id, "name": "A", "repoPath": "/repo/a", "testCommand": "npm test"}


def test_project_store_validation_and_lookup(tmp_path: Path) -> None:
    store = ProjectStore(tmp_path / "projects.json")

    with pytest.raises(ValidationError):
        store.add_project("A", "  ", "npm test")
    with pytest.raises(ProjectNotFoundError):
        store.get_project("missing")


def test_corrupt_project_file_reads_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "projects.json"
    path.write_text("[{\"id\": 1}", encoding="utf-8")

    assert ProjectStore(path).list_projects() == []


def test_config_store_update_use_case(repo: Path) -> None:
    store = ProjectConfigStore()

    updated = store.update_use_case(repo, "logout", status=UseCaseStatus.COMPLETED)

    assert updated.status == UseCaseStatus.COMPLETED
    assert updated.version == "1.2.0"
    assert updated.updated_at != "2024-01-02T00:00:00Z"
    reloaded = store.get_use_case(repo, "logout")
    assert reloaded.status == UseCaseStatus.COMPLETED
    assert reloaded.created_at == "2024-01-01T00:00:00Z"


def test_config_store_keeps_unknown_keys(repo: Path) -> None:
    path = repo / "workflow.config.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    data["customSetting"] = {"x": 1}
    path.write_text(json.dumps(data), encoding="utf-8")
    store = ProjectConfigStore()

    store.record_test_file(repo, USE_CASE_ID, "integration", "tests/int/login.test.ts", aligned_version="1.0.0")

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["customSetting"] == {"x": 1}
    assert saved["useCases"][0]["testFiles"] == {
        "integration": "tests/int/login.test.ts",
        "lastAlignedVersion": "1.0.0",
    }


def test_config_store_missing_and_invalid(tmp_path: Path, repo: Path) -> None:
    store = ProjectConfigStore()

    with pytest.raises(ConfigNotFoundError):
        store.load(tmp_path)
    with pytest.raises(UseCaseNotFoundError):
        store.get_use_case(repo, "nope")

    (repo / "workflow.config.json").write_text("{", encoding="utf-8")
    with pytest.raises(ConfigNotFoundError):
        store.load(repo)


def test_repo_files(tmp_path: Path) -> None:
    write_repo_file(tmp_path, "a/b/c.txt", "hello")

    assert read_repo_file(tmp_path, "a/b/c.txt") == "hello"
    assert read_repo_file(tmp_path, "a/missing.txt") is None
    assert resolve_in_repo(tmp_path, "a/../a/b/c.txt") == (tmp_path / "a" / "b" / "c.txt").resolve()
    with pytest.raises(PathOutsideRepositoryError):
        resolve_in_repo(tmp_path, "../escape.txt")
    with pytest.raises(ValidationError):
        resolve_in_repo(tmp_path, "")


def test_request_bodies_accept_camel_and_snake_case() -> None:
    class Body(CamelBody):
        current_spec: str
        new_spec: str = ""

    assert Body.model_validate({"currentSpec": "a", "newSpec": "b"}).new_spec == "b"
    assert Body.model_validate({"current_spec": "a"}).current_spec == "a"
    # request bodies drop keys they do not declare
    assert not hasattr(Body.model_validate({"currentSpec": "a", "extra": 1}), "extra")
