"""
Command API routes.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from localbox.api.dependencies import get_runtime
from localbox.api.exceptions import handle_route_exceptions
from localbox.api.models.schemas import (
    CommandStatusResponse,
    CommandLogsResponse,
    LogLineModel,
    WaitCommandRequest,
    WaitCommandResponse,
    KillCommandResponse,
)
from localbox.exceptions import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commands", tags=["commands"])


@router.get("/{cmd_id}", response_model=CommandStatusResponse)
@handle_route_exceptions
async def get_command_status(cmd_id: str):
    return CommandStatusResponse(**get_runtime().engine.status(cmd_id).to_dict())


@router.get("/{cmd_id}/logs", response_model=CommandLogsResponse)
@handle_route_exceptions
async def get_command_logs(cmd_id: str):
    logs = get_runtime().engine.logs(cmd_id)
    return CommandLogsResponse(
        cmd_id=cmd_id,
        logs=[LogLineModel(**line.to_dict()) for line in logs],
    )


@router.post("/{cmd_id}/wait", response_model=WaitCommandResponse)
@handle_route_exceptions
async def wait_for_command(cmd_id: str, request: Optional[WaitCommandRequest] = None):
    timeout = request.timeout if request is not None else None
    try:
        result = await get_runtime().engine.wait(cmd_id, timeout=timeout)
    except asyncio.TimeoutError:
        raise HTTPException(status_code=408, detail=f"Command {cmd_id} still running after {timeout}s")
    return WaitCommandResponse(cmd_id=cmd_id, **result.to_dict())


@router.post("/{cmd_id}/kill", response_model=KillCommandResponse)
@handle_route_exceptions
async def kill_command(cmd_id: str):
    engine = get_runtime().engine
    engine.require(cmd_id)
    return KillCommandResponse(cmd_id=cmd_id, killed=engine.kill(cmd_id))


@router.websocket("/{cmd_id}/stream")
async def stream_command_logs(websocket: WebSocket, cmd_id: str):
    engine = get_runtime().engine
    await websocket.accept()
    try:
        record = engine.require(cmd_id)
    except NotFoundError as e:
        await websocket.send_json({"type": "error", "data": {"error": str(e)}})
        await websocket.close(code=1008)
        return

    try:
        async for line in engine.stream(cmd_id):
            await websocket.send_json({"type": "log", "data": line.to_dict()})

        await websocket.send_json({
            "type": "finish_command",
            "data": record.to_status().to_dict(),
        })

        await websocket.close()
    except WebSocketDisconnect:
        logger.debug(f"Log stream for command {cmd_id} closed by client")
