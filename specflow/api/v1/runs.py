import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from specflow.api.deps import AppSettings, CurrentProject, Orchestrator
from specflow.domain.errors import ValidationError
from specflow.domain.models import Job
from specflow.domain.states import JobKind
from specflow.jobs.runner import split_command
from specflow.storage.files import resolve_in_repo

logger = logging.getLogger(__name__)

router = APIRouter()

class TestRunCreate(BaseModel):
    file_path: Optional[str] = None
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

def _run_response(job: Job) -> dict[str, Any]:
    return {
        "runId": job.id,
        "status": job.status,
        "output": job.output,
        "error": job.error,
        "timestamp": job.created_at.isoformat(),
        "completedAt": job.completed_at.isoformat() if job.completed_at else None,
    }

@router.post("")
async def start_test_run(
    project: CurrentProject,
    orchestrator: Orchestrator,
    settings: AppSettings,
    body: Optional[TestRunCreate] = None,
) -> dict[str, str]:
    extra_args: list[str] = []
    try:
        program, args = split_command(project.test_command)
        if body is not None and body.file_path:
            resolve_in_repo(project.repo_path, body.file_path)
            extra_args.append(body.file_path)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Returns immediately; the run's outcome is only visible through polling.
    run_id = orchestrator.start_test_run(
        project.repo_path,
        program,
        args,
        extra_args=extra_args,
        timeout=settings.TEST_RUN_TIMEOUT_SECONDS,
        meta={"project_id": project.id},
    )
    logger.info("Started test run %s for project %s", run_id, project.id)
    return {"runId": run_id}

@router.get("/{run_id}")
async def get_test_run(run_id: str, project: CurrentProject, orchestrator: Orchestrator) -> dict[str, Any]:
    job = orchestrator.get_job(run_id)
    if not job or job.kind != JobKind.TEST_RUN or job.meta.get("project_id") != project.id:
        raise HTTPException(status_code=404, detail="Run not found")
    return _run_response(job)
