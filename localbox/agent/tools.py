"""
Agent-facing sandbox tools.

File writes and command runs requested by an agent's tool calls report
progress through a writer callback and, on failure, return the message of a
RichError instead of raising, so the agent can read the failure and retry.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from localbox.core.runtime import SandboxRuntime
from localbox.exceptions import LocalboxError, get_rich_error
from localbox.workspace.models import WorkspaceFile

logger = logging.getLogger(__name__)

Writer = Callable[[Dict[str, Any]], None]


class SandboxTools:
    def __init__(
        self,
        runtime: SandboxRuntime,
        sandbox_id: str,
        tool_call_id: str,
        writer: Writer,
    ):
        self._runtime = runtime
        self.sandbox_id = sandbox_id
        self.tool_call_id = tool_call_id
        self._writer = writer

    def _emit(self, part_type: str, data: Dict[str, Any]) -> None:
        self._writer({"id": self.tool_call_id, "type": part_type, "data": data})

    def write_files(
        self,
        files: Sequence[WorkspaceFile],
        written: Optional[List[str]] = None,
    ) -> Optional[str]:
        """Upload generated files to the sandbox.

        Args:
            files: Files to write now.
            written: Paths already uploaded by earlier calls of the same tool
                run; reported alongside the new ones.

        Returns:
            None on success, otherwise the rich error message.
        """
        written = list(written or [])
        new_paths = [file.path for file in files]
        paths = written + new_paths
        self._emit("data-generating-files", {"paths": paths, "status": "uploading"})

        try:
            self._runtime.registry.write_files(self.sandbox_id, files)
        except LocalboxError as e:
            rich = get_rich_error(
                action="write files to sandbox",
                args={"written": written, "paths": new_paths},
                error=e,
            )
            self._emit("data-generating-files", {
                "error": rich.error,
                "status": "error",
                "paths": new_paths,
            })
            logger.warning(f"Tool call {self.tool_call_id}: {rich.error['message']}")
            return rich.message

        self._emit("data-generating-files", {"paths": paths, "status": "uploaded"})
        return None

    async def run_command(
        self,
        command: str,
        args: Optional[Sequence[str]] = None,
        sudo: bool = False,
        wait: bool = True,
    ) -> Union[Dict[str, Any], str]:
        """Run a command in the sandbox.

        Returns:
            The command's result dict (exit code and output when ``wait``),
            or the rich error message if it could not be started.
        """
        args = list(args or [])
        self._emit("data-run-command", {"command": command, "args": args, "status": "executing"})

        try:
            record = await self._runtime.engine.submit(self.sandbox_id, command, args, elevated=sudo)
        except LocalboxError as e:
            rich = get_rich_error(
                action="run command in sandbox",
                args={"command": command, "args": args, "sudo": sudo},
                error=e,
            )
            self._emit("data-run-command", {
                "command": command,
                "args": args,
                "status": "error",
                "error": rich.error,
            })
            return rich.message

        if not wait:
            self._emit("data-run-command", {
                "command": command,
                "args": args,
                "cmd_id": record.command_id,
                "status": "running",
            })
            return {"cmd_id": record.command_id, "finished": False}

        result = await self._runtime.engine.wait(record.command_id)
        self._emit("data-run-command", {
            "command": command,
            "args": args,
            "cmd_id": record.command_id,
            "exit_code": result.exit_code,
            "status": "done",
        })
        return {"cmd_id": record.command_id, "finished": True, **result.to_dict()}
