import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from specflow.settings import Settings, settings as default_settings
from specflow.api.v1.jobs import router as jobs_router
from specflow.api.v1.metrics import router as metrics_router
from specflow.api.v1.projects import router as projects_router
from specflow.api.v1.prompts import router as prompts_router
from specflow.api.v1.runs import router as runs_router
from specflow.api.v1.specs import router as specs_router
from specflow.api.v1.testfiles import router as testfiles_router
from specflow.jobs.orchestrator import JobOrchestrator
from specflow.jobs.registry import JobRegistry
from specflow.jobs.retention import RetentionService
from specflow.jobs.runner import ProcessRunner
from specflow.llm.client import RetryingCompletionClient
from specflow.llm.prompts import PromptStore
from specflow.services.generation import GenerationService
from specflow.storage.config import ProjectConfigStore
from specflow.storage.projects import ProjectStore

USE_CASE_PREFIX = "/projects/{project_id}/use-cases/{use_case_id}"


def create_app(
    settings: Optional[Settings] = None,
    completion_client: Optional[RetryingCompletionClient] = None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger = logging.getLogger("uvicorn")

        client = completion_client or RetryingCompletionClient(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            max_attempts=settings.LLM_MAX_ATTEMPTS,
            initial_delay=settings.LLM_INITIAL_BACKOFF_SECONDS,
            multiplier=settings.LLM_BACKOFF_MULTIPLIER,
        )
        if not client.api_key:
            logger.warning("GEMINI_API_KEY is not set; generation endpoints will fail.")

        registry = JobRegistry()
        orchestrator = JobOrchestrator(
            registry,
            ProcessRunner(default_timeout=settings.TEST_RUN_TIMEOUT_SECONDS),
            client,
        )
        prompts = PromptStore(settings.PROMPTS_FILE)

        app.state.settings = settings
        app.state.registry = registry
        app.state.orchestrator = orchestrator
        app.state.projects = ProjectStore(settings.PROJECTS_FILE)
        app.state.configs = ProjectConfigStore()
        app.state.prompts = prompts
        app.state.generation = GenerationService(orchestrator, prompts)

        # Evict finished jobs after the retention window
        retention = RetentionService(
            registry,
            retention_seconds=settings.JOB_RETENTION_SECONDS,
            interval=settings.JOB_SWEEP_INTERVAL_SECONDS,
        )
        await retention.start()

        yield

        # Shutdown
        await retention.stop()
        await orchestrator.shutdown()
        await client.close()
        registry.clear()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(projects_router, prefix="/projects", tags=["projects"])
    app.include_router(specs_router, prefix=USE_CASE_PREFIX, tags=["specs"])
    app.include_router(testfiles_router, prefix=USE_CASE_PREFIX, tags=["tests"])
    app.include_router(runs_router, prefix="/projects/{project_id}/test-runs", tags=["test-runs"])
    app.include_router(jobs_router, prefix="/jobs", tags=["jobs"])
    app.include_router(prompts_router, prefix="/prompts", tags=["prompts"])
    app.include_router(metrics_router, tags=["metrics"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
