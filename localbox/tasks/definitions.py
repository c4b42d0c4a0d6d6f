"""
Task-queue units.

Each unit is a named, independently retryable operation over the sandbox
runtime taking a JSON payload and returning a JSON-able dict. The set of
units mirrors what a remote task platform would invoke: create a sandbox,
write and read files, execute a command, and query or wait on a command.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from localbox.core.runtime import SandboxRuntime
from localbox.exceptions import TaskNotRegisteredError
from localbox.tasks.retry import NON_RETRYABLE, RetryPolicy, run_with_retry
from localbox.workspace.models import WorkspaceFile

logger = logging.getLogger(__name__)

TaskFunc = Callable[[SandboxRuntime, Dict[str, Any]], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class TaskDefinition:
    task_id: str
    run: TaskFunc
    retry: Optional[RetryPolicy] = None


TASKS: Dict[str, TaskDefinition] = {}


def task(task_id: str, retry: Optional[RetryPolicy] = None) -> Callable[[TaskFunc], TaskFunc]:
    """Register a coroutine function as the task unit ``task_id``."""
    def decorator(func: TaskFunc) -> TaskFunc:
        TASKS[task_id] = TaskDefinition(task_id=task_id, run=func, retry=retry)
        return func
    return decorator


@task("create-sandbox")
async def create_sandbox(runtime: SandboxRuntime, payload: Dict[str, Any]) -> Dict[str, Any]:
    workspace = runtime.registry.create(
        timeout_ms=payload.get("timeout"),
        ports=payload.get("ports"),
    )
    return workspace.to_dict()


@task("write-files")
async def write_files(runtime: SandboxRuntime, payload: Dict[str, Any]) -> Dict[str, Any]:
    files = [WorkspaceFile.from_dict(item) for item in payload["files"]]
    written = runtime.registry.write_files(payload["sandbox_id"], files)
    return {"success": True, "files_written": written}


@task("read-files")
async def read_files(runtime: SandboxRuntime, payload: Dict[str, Any]) -> Dict[str, Any]:
    files = runtime.registry.read_files(payload["sandbox_id"], payload["paths"])
    return {"files": [file.to_dict() for file in files]}


@task("execute-command")
async def execute_command(runtime: SandboxRuntime, payload: Dict[str, Any]) -> Dict[str, Any]:
    record = await runtime.engine.submit(
        payload["sandbox_id"],
        payload["command"],
        payload.get("args"),
        elevated=payload.get("sudo", False),
    )
    if payload.get("wait"):
        result = await runtime.engine.wait(record.command_id)
        return {"cmd_id": record.command_id, "finished": True, **result.to_dict()}
    return {"cmd_id": record.command_id, "started": True, "finished": record.finished}


@task("get-command-status")
async def get_command_status(runtime: SandboxRuntime, payload: Dict[str, Any]) -> Dict[str, Any]:
    return runtime.engine.status(payload["cmd_id"]).to_dict()


@task("get-command-logs")
async def get_command_logs(runtime: SandboxRuntime, payload: Dict[str, Any]) -> Dict[str, Any]:
    logs = runtime.engine.logs(payload["cmd_id"])
    return {"logs": [line.to_dict() for line in logs]}


@task("wait-for-command")
async def wait_for_command(runtime: SandboxRuntime, payload: Dict[str, Any]) -> Dict[str, Any]:
    result = await runtime.engine.wait(payload["cmd_id"])
    return result.to_dict()


class TaskRunner:
    """Triggers registered task units against one runtime."""

    def __init__(
        self,
        runtime: SandboxRuntime,
        policy: Optional[RetryPolicy] = None,
        tasks: Optional[Dict[str, TaskDefinition]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self._runtime = runtime
        self._policy = policy or RetryPolicy()
        self._tasks = TASKS if tasks is None else tasks
        self._sleep = sleep

    def task_ids(self) -> List[str]:
        return sorted(self._tasks)

    async def trigger(self, task_id: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run one unit, retrying per its policy.

        Raises:
            TaskNotRegisteredError: If ``task_id`` is unknown.
            KeyError: If the payload lacks a required field.
        """
        definition = self._tasks.get(task_id)
        if definition is None:
            raise TaskNotRegisteredError(task_id)
        payload = payload or {}

        async def attempt() -> Dict[str, Any]:
            return await definition.run(self._runtime, payload)

        kwargs: Dict[str, Any] = {"non_retryable": NON_RETRYABLE + (KeyError,)}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        logger.debug(f"Triggering task {task_id}")
        return await run_with_retry(attempt, definition.retry or self._policy, name=task_id, **kwargs)
