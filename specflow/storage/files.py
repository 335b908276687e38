import logging
from pathlib import Path
from typing import Optional

from specflow.domain.errors import PathOutsideRepositoryError, ValidationError

logger = logging.getLogger(__name__)


def resolve_in_repo(repo_path: str | Path, relative_path: str) -> Path:
    """Resolves a repository-relative path, refusing anything that escapes the repository."""
    if not relative_path:
        raise ValidationError("File path is required")
    root = Path(repo_path).resolve()
    full_path = (root / relative_path).resolve()
    if not full_path.is_relative_to(root):
        raise PathOutsideRepositoryError(relative_path)
    return full_path


def read_repo_file(repo_path: str | Path, relative_path: str) -> Optional[str]:
    """Returns the file's text, or None if it does not exist or cannot be read."""
    full_path = resolve_in_repo(repo_path, relative_path)
    if not full_path.is_file():
        return None
    try:
        return full_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Error reading %s: %s", full_path, e)
        return None


def write_repo_file(repo_path: str | Path, relative_path: str, content: str) -> Path:
    full_path = resolve_in_repo(repo_path, relative_path)
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(content, encoding="utf-8")
    logger.info("Wrote %d chars to %s", len(content), full_path)
    return full_path
