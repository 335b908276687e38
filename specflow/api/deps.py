from typing import Annotated

from fastapi import Depends, HTTPException, Request

from specflow.domain.errors import ProjectNotFoundError
from specflow.jobs.orchestrator import JobOrchestrator
from specflow.llm.prompts import PromptStore
from specflow.services.generation import GenerationService
from specflow.settings import Settings
from specflow.storage.config import ProjectConfigStore
from specflow.storage.projects import ProjectStore
from specflow.storage.schemas import Project


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_orchestrator(request: Request) -> JobOrchestrator:
    return request.app.state.orchestrator

def get_projects(request: Request) -> ProjectStore:
    return request.app.state.projects

def get_configs(request: Request) -> ProjectConfigStore:
    return request.app.state.configs

def get_prompts(request: Request) -> PromptStore:
    return request.app.state.prompts

def get_generation(request: Request) -> GenerationService:
    return request.app.state.generation

# Dependencies for services created in the app lifespan
AppSettings = Annotated[Settings, Depends(get_settings)]
Orchestrator = Annotated[JobOrchestrator, Depends(get_orchestrator)]
Projects = Annotated[ProjectStore, Depends(get_projects)]
Configs = Annotated[ProjectConfigStore, Depends(get_configs)]
Prompts = Annotated[PromptStore, Depends(get_prompts)]
Generation = Annotated[GenerationService, Depends(get_generation)]


def get_project(project_id: str, projects: Projects) -> Project:
    try:
        return projects.get_project(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

CurrentProject = Annotated[Project, Depends(get_project)]
