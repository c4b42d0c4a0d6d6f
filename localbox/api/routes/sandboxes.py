"""
Sandbox API routes.
"""
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from localbox.api.dependencies import get_runtime
from localbox.api.exceptions import handle_route_exceptions
from localbox.api.models.schemas import (
    CreateSandboxRequest,
    SandboxResponse,
    SandboxStatusResponse,
    DeleteSandboxResponse,
    FileModel,
    WriteFilesRequest,
    WriteFilesResponse,
    ReadFilesRequest,
    ReadFilesResponse,
    ListFilesResponse,
    RunCommandRequest,
    RunCommandResponse,
    CommandStatusResponse,
)
from localbox.exceptions import WorkspaceNotFoundError
from localbox.workspace.models import WorkspaceFile

router = APIRouter(prefix="/sandboxes", tags=["sandboxes"])


@router.post("", response_model=SandboxResponse)
@handle_route_exceptions
async def create_sandbox(request: CreateSandboxRequest):
    workspace = get_runtime().registry.create(timeout_ms=request.timeout, ports=request.ports)
    return SandboxResponse(**workspace.to_dict())


@router.get("/{sandbox_id}", response_model=SandboxStatusResponse)
@handle_route_exceptions
async def get_sandbox_status(sandbox_id: str):
    workspace = get_runtime().registry.get(sandbox_id)
    return SandboxStatusResponse(status="running" if workspace is not None else "stopped")


@router.delete("/{sandbox_id}", response_model=DeleteSandboxResponse)
@handle_route_exceptions
async def delete_sandbox(sandbox_id: str):
    registry = get_runtime().registry
    registry.require(sandbox_id)
    if not await registry.teardown_async(sandbox_id):
        raise HTTPException(status_code=500, detail=f"Failed to cleanup sandbox {sandbox_id}")
    return DeleteSandboxResponse(status="success", sandbox_id=sandbox_id)


@router.get("/{sandbox_id}/files", response_class=PlainTextResponse)
@handle_route_exceptions
async def read_file(sandbox_id: str, path: Optional[str] = None):
    if not path:
        raise HTTPException(
            status_code=400,
            detail="Invalid parameters. You must pass a `path` as query",
        )
    files = get_runtime().registry.read_files(sandbox_id, [path])
    if not files or not files[0].content:
        raise HTTPException(status_code=404, detail="File not found in the Sandbox")
    return PlainTextResponse(files[0].content)


@router.get("/{sandbox_id}/files/list", response_model=ListFilesResponse)
@handle_route_exceptions
async def list_files(sandbox_id: str, dir: str = ""):
    entries = get_runtime().registry.list_files(sandbox_id, dir)
    return ListFilesResponse(path=dir, entries=entries)


@router.post("/{sandbox_id}/files", response_model=WriteFilesResponse)
@handle_route_exceptions
async def write_files(sandbox_id: str, request: WriteFilesRequest):
    files = [WorkspaceFile(path=file.path, content=file.content) for file in request.files]
    written = get_runtime().registry.write_files(sandbox_id, files)
    return WriteFilesResponse(success=True, files_written=written)


@router.post("/{sandbox_id}/files/read", response_model=ReadFilesResponse)
@handle_route_exceptions
async def read_files(sandbox_id: str, request: ReadFilesRequest):
    files = get_runtime().registry.read_files(sandbox_id, request.paths)
    return ReadFilesResponse(files=[FileModel(**file.to_dict()) for file in files])


@router.post("/{sandbox_id}/commands", response_model=RunCommandResponse)
@handle_route_exceptions
async def run_command(sandbox_id: str, request: RunCommandRequest):
    engine = get_runtime().engine
    record = await engine.submit(sandbox_id, request.cmd, request.args, elevated=request.sudo)
    started_at = int(record.started_at * 1000)
    if not request.wait:
        return RunCommandResponse(
            cmd_id=record.command_id,
            started_at=started_at,
            finished=record.finished,
            exit_code=record.exit_code,
        )
    result = await engine.wait(record.command_id)
    return RunCommandResponse(
        cmd_id=record.command_id,
        started_at=started_at,
        finished=True,
        **result.to_dict(),
    )


@router.get("/{sandbox_id}/commands", response_model=List[CommandStatusResponse])
@handle_route_exceptions
async def list_commands(sandbox_id: str):
    runtime = get_runtime()
    if runtime.registry.get(sandbox_id) is None:
        raise WorkspaceNotFoundError(sandbox_id)
    return [
        CommandStatusResponse(**record.to_status().to_dict())
        for record in runtime.engine.list(sandbox_id)
    ]
