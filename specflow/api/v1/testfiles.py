import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import Field

from specflow.api.deps import Configs, CurrentProject, Generation
from specflow.domain.errors import SpecflowError, UseCaseNotFoundError, ValidationError
from specflow.storage.files import read_repo_file, write_repo_file
from specflow.storage.schemas import CamelBody

logger = logging.getLogger(__name__)

router = APIRouter()

TestType = Literal["unit", "integration"]

class GenerateTestsRequest(CamelBody):
    spec: Optional[str] = None
    type: TestType = "unit"

class ReviseTestsRequest(CamelBody):
    current_tests: Optional[str] = None
    instructions: Optional[str] = None

class UpdateFromSpecRequest(CamelBody):
    current_tests: Optional[str] = None
    new_spec: Optional[str] = None

class SyncTestsRequest(CamelBody):
    file_path: Optional[str] = None
    content: str = ""
    type: Optional[TestType] = None
    version: Optional[str] = None

class AgentInstructionsRequest(CamelBody):
    spec: Optional[str] = None
    test_paths: list[str] = Field(default_factory=list)

@router.get("/tests")
async def read_tests(project: CurrentProject, path: Optional[str] = Query(None)) -> dict[str, Any]:
    if not path:
        raise HTTPException(status_code=400, detail="Missing path query param")
    try:
        content = read_repo_file(project.repo_path, path)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"content": content or ""}

@router.post("/tests/generate")
async def generate_tests(body: GenerateTestsRequest, project: CurrentProject, generation: Generation) -> dict[str, Any]:
    if not body.spec:
        raise HTTPException(status_code=400, detail="Spec is required")
    try:
        tests = await generation.generate_tests(body.spec, body.type)
    except SpecflowError as e:
        logger.error("Error generating tests for project %s: %s", project.id, e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"tests": tests}

@router.post("/tests/revise")
async def revise_tests(body: ReviseTestsRequest, project: CurrentProject, generation: Generation) -> dict[str, Any]:
    if not body.current_tests or not body.instructions:
        raise HTTPException(status_code=400, detail="Current tests and instructions are required")
    try:
        tests = await generation.revise_tests(body.current_tests, body.instructions)
    except SpecflowError as e:
        logger.error("Error revising tests for project %s: %s", project.id, e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"tests": tests}

@router.post("/tests/update-from-spec")
async def update_tests_from_spec(body: UpdateFromSpecRequest, project: CurrentProject, generation: Generation) -> dict[str, Any]:
    if not body.current_tests or not body.new_spec:
        raise HTTPException(status_code=400, detail="Current tests and new spec are required")
    try:
        tests = await generation.update_tests_from_spec(body.current_tests, body.new_spec)
    except SpecflowError as e:
        logger.error("Error updating tests for project %s: %s", project.id, e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"tests": tests}

@router.post("/tests/sync")
async def sync_tests(use_case_id: str, body: SyncTestsRequest, project: CurrentProject, configs: Configs) -> dict[str, Any]:
    if not body.file_path:
        raise HTTPException(status_code=400, detail="File path is required")
    try:
        configs.get_use_case(project.repo_path, use_case_id)
        write_repo_file(project.repo_path, body.file_path, body.content)
        if body.type:
            configs.record_test_file(
                project.repo_path,
                use_case_id,
                test_type=body.type,
                file_path=body.file_path,
                aligned_version=body.version,
            )
    except UseCaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True}

@router.post("/agent-instructions")
async def agent_instructions(body: AgentInstructionsRequest, project: CurrentProject, generation: Generation) -> dict[str, Any]:
    if not body.spec:
        raise HTTPException(status_code=400, detail="Spec is required")
    try:
        instructions = await generation.generate_agent_instructions(body.spec, body.test_paths)
    except SpecflowError as e:
        logger.error("Error generating agent instructions for project %s: %s", project.id, e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"instructions": instructions}
