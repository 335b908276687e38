from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from specflow.api.deps import Orchestrator
from specflow.domain.states import JobKind, JobStatus

router = APIRouter()

class GenerationCreate(BaseModel):
    prompt: Optional[str] = None

class JobResponse(BaseModel):
    id: str
    kind: JobKind
    status: JobStatus
    output: str
    error: Optional[str] = None
    meta: dict[str, Any] = {}
    created_at: datetime
    completed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

@router.post("/generations", status_code=status.HTTP_202_ACCEPTED)
async def create_generation(payload: GenerationCreate, orchestrator: Orchestrator) -> dict[str, str]:
    if not payload.prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")
    job_id = orchestrator.start_generation(payload.prompt, meta={"operation": "adhoc"})
    return {"jobId": job_id}

@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, orchestrator: Orchestrator):
    job = orchestrator.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job
