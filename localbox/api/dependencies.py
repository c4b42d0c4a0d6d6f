"""
Shared dependencies for API routes.

This module provides the runtime access pattern used by all route modules.
"""
from typing import Optional

from localbox.core.runtime import SandboxRuntime
from localbox.exceptions import RuntimeNotInitializedError
from localbox.tasks.definitions import TaskRunner

_runtime: Optional[SandboxRuntime] = None
_task_runner: Optional[TaskRunner] = None


def set_runtime(runtime: Optional[SandboxRuntime], task_runner: Optional[TaskRunner] = None) -> None:
    """
    Set the runtime served by the API.

    This should be called once during application setup from server.py.

    Args:
        runtime: The SandboxRuntime instance to serve, or None to reset.
        task_runner: Runner for task-queue units; defaults to one over
            ``runtime``.
    """
    global _runtime, _task_runner
    _runtime = runtime
    if runtime is None:
        _task_runner = None
    else:
        _task_runner = task_runner or TaskRunner(runtime)


def get_runtime() -> SandboxRuntime:
    """
    Get the runtime served by the API.

    Raises:
        RuntimeNotInitializedError: If no runtime has been set.
    """
    if _runtime is None:
        raise RuntimeNotInitializedError()
    return _runtime


def get_task_runner() -> TaskRunner:
    if _task_runner is None:
        raise RuntimeNotInitializedError()
    return _task_runner
