"""
Custom exception hierarchy for localbox.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Tuple


class LocalboxError(Exception):
    """Base exception for all localbox errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ClientError(LocalboxError):
    """Base exception for errors caused by the caller."""
    pass


class LocalboxClientError(ClientError):
    """Exception raised when a client HTTP request fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.status_code = details.get("status_code") if details else None
        self.response_text = details.get("response_text") if details else None


class ServerError(LocalboxError):
    """Base exception for server-side errors."""
    pass


class ExecutorError(LocalboxError):
    """Base exception for command execution errors."""
    pass


class NotFoundError(ClientError):
    """A referenced workspace or command does not exist (or has expired)."""
    pass


class WorkspaceNotFoundError(NotFoundError):
    def __init__(self, workspace_id: str):
        super().__init__(f"Sandbox {workspace_id} not found", {"workspace_id": workspace_id})
        self.workspace_id = workspace_id


class CommandNotFoundError(NotFoundError):
    def __init__(self, command_id: str):
        super().__init__(f"Command {command_id} not found", {"command_id": command_id})
        self.command_id = command_id


class TaskNotRegisteredError(NotFoundError):
    def __init__(self, task_id: str):
        super().__init__(f"Task not registered: {task_id}", {"task_id": task_id})
        self.task_id = task_id


class RuntimeNotInitializedError(ServerError):
    def __init__(self):
        super().__init__("Sandbox runtime not initialized. Call create_app() first.")


class ProvisioningError(ServerError):
    def __init__(self, path: str, cause: Optional[str] = None):
        message = f"Failed to create sandbox at {path}"
        if cause:
            message = f"{message} - {cause}"
        super().__init__(message, {"path": path, "cause": cause})
        self.path = path
        self.cause = cause


class ExecutionFault(ExecutorError):
    """Spawn or runtime failure of a command's process.

    Never raised to observers: the engine converts it into a synthetic
    stderr line and exit code 1 on the command itself.
    """

    def __init__(self, command_id: str, cause: str):
        super().__init__(f"Command execution failed: {command_id} - {cause}", {
            "command_id": command_id,
            "cause": cause,
        })
        self.command_id = command_id
        self.cause = cause


class IOReadFault(ServerError):
    def __init__(self, path: str, cause: str):
        super().__init__(f"Failed to read file {path}: {cause}", {"path": path})
        self.path = path
        self.cause = cause


class IOWriteFault(ServerError):
    def __init__(self, path: str, cause: str):
        super().__init__(f"Failed to write file {path}: {cause}", {"path": path})
        self.path = path
        self.cause = cause


class WriteFilesError(ServerError):
    """Aggregated failure of a batch write.

    Every file of the batch was attempted; ``failures`` holds one
    IOWriteFault per path that could not be written, in batch order.
    """

    def __init__(self, workspace_id: str, failures: List[IOWriteFault]):
        paths = [failure.path for failure in failures]
        super().__init__(
            f"Failed to write {len(failures)} file(s) to sandbox {workspace_id}: {failures[0].cause}",
            {"workspace_id": workspace_id, "paths": paths},
        )
        self.workspace_id = workspace_id
        self.failures = failures

    @property
    def failed_paths(self) -> List[str]:
        return [failure.path for failure in self.failures]

    @property
    def first(self) -> IOWriteFault:
        return self.failures[0]


@dataclass
class RichError:
    """Structured error forwarded to the agent instead of an exception."""
    action: str
    args: Dict[str, Any]
    error: Dict[str, Any]
    message: str
    failed_paths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "args": self.args,
            "error": self.error,
            "message": self.message,
            "failed_paths": self.failed_paths,
        }


def _describe_error(error: BaseException) -> Tuple[str, Dict[str, Any]]:
    text = error.message if isinstance(error, LocalboxError) else str(error)
    info: Dict[str, Any] = {"type": type(error).__name__, "message": text}
    if isinstance(error, LocalboxError) and error.details:
        info["details"] = error.details
    return text, info


def get_rich_error(action: str, args: Dict[str, Any], error: BaseException) -> RichError:
    """Build the structured error reported when ``action`` fails."""
    text, info = _describe_error(error)
    failed_paths = error.failed_paths if isinstance(error, WriteFilesError) else []
    message = (
        f"Error during {action}: {text}\n"
        "Review the arguments and the error above before retrying."
    )
    return RichError(
        action=action,
        args=args,
        error=info,
        message=message,
        failed_paths=failed_paths,
    )
