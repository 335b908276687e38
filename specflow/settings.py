from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    PROJECT_NAME: str = "specflow"
    LOG_LEVEL: str = "INFO"

    # CORS (permissive by default; the UI is served from another origin)
    CORS_ORIGINS: list[str] = ["*"]

    # Local storage
    PROJECTS_FILE: Path = DATA_DIR / "projects.json"
    PROMPTS_FILE: Path = DATA_DIR / "prompts.json"

    # Gemini
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-2.0-flash-exp"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    LLM_TIMEOUT_SECONDS: float = 120.0
    LLM_MAX_ATTEMPTS: int = 5
    LLM_INITIAL_BACKOFF_SECONDS: float = 5.0
    LLM_BACKOFF_MULTIPLIER: float = 2.0

    # Test runs
    TEST_RUN_TIMEOUT_SECONDS: float = 600.0

    # Job retention
    JOB_RETENTION_SECONDS: int = 3600
    JOB_SWEEP_INTERVAL_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
