"""
Task-queue API routes.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body

from localbox.api.dependencies import get_task_runner
from localbox.api.exceptions import handle_route_exceptions
from localbox.api.models.schemas import TriggerTaskResponse

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
@handle_route_exceptions
async def list_tasks():
    return {"tasks": get_task_runner().task_ids()}


@router.post("/{task_id}", response_model=TriggerTaskResponse)
@handle_route_exceptions
async def trigger_task(task_id: str, payload: Optional[Dict[str, Any]] = Body(default=None)):
    output = await get_task_runner().trigger(task_id, payload or {})
    return TriggerTaskResponse(status="success", task_id=task_id, output=output)
