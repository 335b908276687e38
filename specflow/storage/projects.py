import json
import logging
import threading
from pathlib import Path
from uuid import uuid4

from specflow.domain.errors import ProjectNotFoundError, ValidationError
from specflow.storage.schemas import Project

logger = logging.getLogger(__name__)


class ProjectStore:
    """Project list kept in a small local JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def list_projects(self) -> list[Project]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [Project.model_validate(item) for item in data]
        except (OSError, ValueError, TypeError) as e:
            # pydantic's ValidationError is a ValueError
            logger.error("Error reading projects file %s: %s", self.path, e)
            return []

    def get_project(self, project_id: str) -> Project:
        for project in self.list_projects():
            if project.id == project_id:
                return project
        raise ProjectNotFoundError(project_id)

    def add_project(self, name: str, repo_path: str, test_command: str) -> Project:
        if not (name and name.strip()) or not (repo_path and repo_path.strip()) \
                or not (test_command and test_command.strip()):
            raise ValidationError("Missing required fields")

        with self._lock:
            projects = self.list_projects()
            taken = {p.id for p in projects}
            project_id = uuid4().hex[:12]
            while project_id in taken:
                project_id = uuid4().hex[:12]

            project = Project(id=project_id, name=name, repo_path=repo_path, test_command=test_command)
            projects.append(project)
            self._save(projects)

        logger.info("Added project %s (%s)", project.id, project.name)
        return project

    def _save(self, projects: list[Project]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [p.to_json_dict() for p in projects]
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
