class SpecflowError(Exception):
    """Base exception for specflow errors."""
    pass

class ConfigurationError(SpecflowError):
    pass

class ValidationError(SpecflowError):
    pass

class PathOutsideRepositoryError(ValidationError):
    def __init__(self, path):
        super().__init__(f"Path {path} resolves outside the repository")

class NotFoundError(SpecflowError):
    pass

class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id):
        super().__init__("Project not found")
        self.project_id = project_id

class ConfigNotFoundError(NotFoundError):
    def __init__(self, repo_path):
        super().__init__("Config not found")
        self.repo_path = repo_path

class UseCaseNotFoundError(NotFoundError):
    def __init__(self, use_case_id):
        super().__init__("Use case not found")
        self.use_case_id = use_case_id

class JobNotFoundError(NotFoundError):
    def __init__(self, job_id):
        super().__init__(f"Job {job_id} not found")

class CompletionError(SpecflowError):
    """The text-generation endpoint failed in a way that is not retried."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

class RateLimitExceededError(CompletionError):
    def __init__(self, attempts: int):
        super().__init__(f"Rate limited by completion endpoint after {attempts} attempts", status_code=429)
        self.attempts = attempts
