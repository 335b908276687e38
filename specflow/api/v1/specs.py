import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from specflow.api.deps import Configs, CurrentProject, Generation
from specflow.domain.errors import SpecflowError, UseCaseNotFoundError, ValidationError
from specflow.domain.states import UseCaseStatus
from specflow.storage.files import read_repo_file, write_repo_file
from specflow.storage.schemas import CamelBody

logger = logging.getLogger(__name__)

router = APIRouter()

class SpecMetadata(CamelBody):
    status: Optional[UseCaseStatus] = None
    version: Optional[str] = None

class SpecUpdate(CamelBody):
    content: Optional[str] = None
    metadata: Optional[SpecMetadata] = None

class StructureRequest(CamelBody):
    description: Optional[str] = None
    title: Optional[str] = None
    current_spec: Optional[str] = None

class ReviseRequest(CamelBody):
    current_spec: Optional[str] = None
    instructions: Optional[str] = None

@router.get("/spec")
async def get_spec(use_case_id: str, project: CurrentProject, configs: Configs) -> dict[str, Any]:
    try:
        use_case = configs.get_use_case(project.repo_path, use_case_id)
        content = read_repo_file(project.repo_path, use_case.spec_path)
    except UseCaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"content": content or "", "metadata": use_case.metadata()}

@router.post("/spec")
async def save_spec(use_case_id: str, body: SpecUpdate, project: CurrentProject, configs: Configs) -> dict[str, Any]:
    if body.content is None:
        raise HTTPException(status_code=400, detail="Content is required")
    try:
        use_case = configs.get_use_case(project.repo_path, use_case_id)
        write_repo_file(project.repo_path, use_case.spec_path, body.content)
        if body.metadata is not None:
            configs.update_use_case(
                project.repo_path,
                use_case_id,
                status=body.metadata.status,
                version=body.metadata.version,
            )
    except UseCaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True}

@router.post("/spec/structure")
async def structure_spec(body: StructureRequest, project: CurrentProject, generation: Generation) -> dict[str, Any]:
    if not body.description:
        raise HTTPException(status_code=400, detail="Description is required")
    try:
        spec = await generation.structure_use_case(body.description, body.title, body.current_spec)
    except SpecflowError as e:
        logger.error("Error generating spec for project %s: %s", project.id, e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"spec": spec}

@router.post("/spec/revise")
async def revise_spec(body: ReviseRequest, project: CurrentProject, generation: Generation) -> dict[str, Any]:
    if not body.current_spec or not body.instructions:
        raise HTTPException(status_code=400, detail="Current spec and instructions are required")
    try:
        spec = await generation.revise_use_case(body.current_spec, body.instructions)
    except SpecflowError as e:
        logger.error("Error revising spec for project %s: %s", project.id, e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"spec": spec}
