"""
Pydantic models for API requests and responses.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Any, Optional


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    runtime: Dict[str, Any]


class CreateSandboxRequest(BaseModel):
    timeout: Optional[int] = Field(default=None, ge=0, description="Time to live in milliseconds")
    ports: List[int] = Field(default_factory=list)


class SandboxResponse(BaseModel):
    sandbox_id: str
    work_dir: str
    created_at: int
    timeout: int
    ports: List[int]


class SandboxStatusResponse(BaseModel):
    status: str


class DeleteSandboxResponse(BaseModel):
    status: str
    sandbox_id: str


class FileModel(BaseModel):
    path: str
    content: str = ""


class WriteFilesRequest(BaseModel):
    files: List[FileModel]


class WriteFilesResponse(BaseModel):
    success: bool
    files_written: int


class ReadFilesRequest(BaseModel):
    paths: List[str]


class ReadFilesResponse(BaseModel):
    files: List[FileModel]


class ListFilesResponse(BaseModel):
    path: str
    entries: List[str]


class RunCommandRequest(BaseModel):
    cmd: str
    args: List[str] = Field(default_factory=list)
    sudo: bool = False
    wait: bool = False


class RunCommandResponse(BaseModel):
    cmd_id: str
    started_at: int
    finished: bool
    exit_code: Optional[int] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None


class CommandStatusResponse(BaseModel):
    cmd_id: str
    finished: bool
    exit_code: Optional[int] = None
    state: str


class LogLineModel(BaseModel):
    data: str
    stream: str
    timestamp: int


class CommandLogsResponse(BaseModel):
    cmd_id: str
    logs: List[LogLineModel]


class WaitCommandRequest(BaseModel):
    timeout: Optional[float] = Field(default=None, gt=0, description="Seconds to wait before giving up")


class WaitCommandResponse(BaseModel):
    cmd_id: str
    exit_code: int
    stdout: str
    stderr: str


class KillCommandResponse(BaseModel):
    cmd_id: str
    killed: bool


class TriggerTaskResponse(BaseModel):
    status: str
    task_id: str
    output: Dict[str, Any]
