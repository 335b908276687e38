from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from specflow.api.deps import Configs, CurrentProject, Projects
from specflow.domain.errors import ConfigNotFoundError, ValidationError

router = APIRouter()

class ProjectCreate(BaseModel):
    # Optional so that missing fields surface as 400 rather than 422
    name: Optional[str] = None
    repo_path: Optional[str] = None
    test_command: Optional[str] = None
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(payload: ProjectCreate, projects: Projects) -> dict[str, Any]:
    try:
        project = projects.add_project(payload.name, payload.repo_path, payload.test_command)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return project.to_json_dict()

@router.get("")
async def list_projects(projects: Projects) -> list[dict[str, Any]]:
    return [p.to_json_dict() for p in projects.list_projects()]

@router.get("/{project_id}/config")
async def get_project_config(project: CurrentProject, configs: Configs) -> dict[str, Any]:
    try:
        config = configs.load(project.repo_path)
    except ConfigNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return config.to_json_dict()
