from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from specflow.api.deps import Prompts
from specflow.domain.errors import NotFoundError

router = APIRouter()

class PromptUpdate(BaseModel):
    template: Optional[str] = None

@router.get("")
async def list_prompts(prompts: Prompts) -> dict[str, str]:
    return prompts.list_templates()

@router.get("/{name}")
async def get_prompt(name: str, prompts: Prompts) -> dict[str, Any]:
    try:
        return {"name": name, "template": prompts.get_template(name)}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.put("/{name}")
async def save_prompt(name: str, body: PromptUpdate, prompts: Prompts) -> dict[str, Any]:
    if body.template is None:
        raise HTTPException(status_code=400, detail="Template is required")
    try:
        prompts.save_template(name, body.template)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}
