import json
import logging
from pathlib import Path
from typing import Optional

from specflow.domain.errors import ConfigNotFoundError, UseCaseNotFoundError
from specflow.domain.states import UseCaseStatus
from specflow.storage.schemas import ProjectConfig, UseCase, UseCaseTestFiles, now_iso

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "workflow.config.json"


class ProjectConfigStore:
    """Reads and writes ``workflow.config.json`` at the root of a project repository."""

    filename = CONFIG_FILENAME

    def config_path(self, repo_path: str | Path) -> Path:
        return Path(repo_path) / self.filename

    def load(self, repo_path: str | Path) -> ProjectConfig:
        path = self.config_path(repo_path)
        if not path.is_file():
            raise ConfigNotFoundError(repo_path)
        try:
            return ProjectConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            logger.error("Error reading config at %s: %s", path, e)
            raise ConfigNotFoundError(repo_path) from e

    def save(self, repo_path: str | Path, config: ProjectConfig) -> None:
        path = self.config_path(repo_path)
        path.write_text(json.dumps(config.to_json_dict(), indent=2), encoding="utf-8")

    def get_use_case(self, repo_path: str | Path, use_case_id: str) -> UseCase:
        try:
            config = self.load(repo_path)
        except ConfigNotFoundError as e:
            raise UseCaseNotFoundError(use_case_id) from e
        use_case = config.find_use_case(use_case_id)
        if use_case is None:
            raise UseCaseNotFoundError(use_case_id)
        return use_case

    def update_use_case(
        self,
        repo_path: str | Path,
        use_case_id: str,
        status: Optional[UseCaseStatus] = None,
        version: Optional[str] = None,
    ) -> UseCase:
        """Merges status/version into the use case and bumps ``updatedAt``."""
        config = self.load(repo_path)
        use_case = config.find_use_case(use_case_id)
        if use_case is None:
            raise UseCaseNotFoundError(use_case_id)

        if status is not None:
            use_case.status = UseCaseStatus(status)
        if version:
            use_case.version = version
        use_case.updated_at = now_iso()

        self.save(repo_path, config)
        return use_case

    def record_test_file(
        self,
        repo_path: str | Path,
        use_case_id: str,
        test_type: str,
        file_path: str,
        aligned_version: Optional[str] = None,
    ) -> UseCase:
        """Remembers where a use case's unit/integration tests live and which spec version they cover."""
        config = self.load(repo_path)
        use_case = config.find_use_case(use_case_id)
        if use_case is None:
            raise UseCaseNotFoundError(use_case_id)

        test_files = use_case.test_files or UseCaseTestFiles()
        if test_type == "unit":
            test_files.unit = file_path
        elif test_type == "integration":
            test_files.integration = file_path
        if aligned_version:
            test_files.last_aligned_version = aligned_version
        use_case.test_files = test_files
        use_case.updated_at = now_iso()

        self.save(repo_path, config)
        return use_case
