"""
Client for a localbox server: sandboxes, their files and their commands.
"""
import json
import logging
from typing import Any, Dict, Iterator, List, Optional

import websocket

from localbox.client.base import BaseClient
from localbox.exceptions import LocalboxClientError

logger = logging.getLogger(__name__)


class RemoteCommand:
    """Handle on a command started in a remote sandbox."""

    def __init__(self, cmd_id: str, client: BaseClient, started_at: Optional[int] = None):
        self.cmd_id = cmd_id
        self.started_at = started_at
        self._client = client

    def status(self) -> Dict[str, Any]:
        return self._client._get(f"/commands/{self.cmd_id}")

    def logs(self) -> List[Dict[str, Any]]:
        return self._client._get(f"/commands/{self.cmd_id}/logs")["logs"]

    def wait(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Block until the command finishes.

        Returns:
            The exit_code, stdout and stderr of the command.
        """
        data = {"timeout": timeout} if timeout is not None else {}
        return self._client._post(f"/commands/{self.cmd_id}/wait", data)

    def kill(self) -> bool:
        return self._client._post(f"/commands/{self.cmd_id}/kill")["killed"]

    def stream_logs(self, timeout: Optional[float] = None) -> Iterator[Dict[str, Any]]:
        """Yield log lines from the start of the command until it finishes.

        Args:
            timeout: Socket timeout in seconds for each received message.

        Raises:
            LocalboxClientError: If the server reports an error on the stream.
        """
        ws_url = self._client.server_url.replace("http://", "ws://").replace("https://", "wss://")
        ws = websocket.create_connection(f"{ws_url}/commands/{self.cmd_id}/stream", timeout=timeout)
        try:
            while True:
                raw = ws.recv()
                if not raw:
                    return
                message = json.loads(raw)
                if message["type"] == "log":
                    yield message["data"]
                elif message["type"] == "finish_command":
                    logger.debug(f"Command {self.cmd_id} stream finished: {message['data']}")
                    return
                else:
                    raise LocalboxClientError(
                        f"Log stream for command {self.cmd_id} failed",
                        details={"response": message},
                    )
        finally:
            ws.close()

    def __repr__(self) -> str:
        return f"RemoteCommand(id='{self.cmd_id[:8]}...')"


class RemoteSandbox:
    """Handle on one sandbox of a localbox server."""

    def __init__(self, sandbox_id: str, client: BaseClient, info: Optional[Dict[str, Any]] = None):
        self.sandbox_id = sandbox_id
        self.info = info or {}
        self._client = client

    def status(self) -> str:
        return self._client._get(f"/sandboxes/{self.sandbox_id}")["status"]

    def write_files(self, files: Dict[str, str]) -> int:
        """
        Write files into the sandbox.

        Args:
            files: Mapping of sandbox-relative path to text content.

        Returns:
            The number of files written.
        """
        data = {"files": [{"path": path, "content": content} for path, content in files.items()]}
        return self._client._post(f"/sandboxes/{self.sandbox_id}/files", data)["files_written"]

    def read_files(self, paths: List[str]) -> Dict[str, str]:
        result = self._client._post(f"/sandboxes/{self.sandbox_id}/files/read", {"paths": paths})
        return {item["path"]: item["content"] for item in result["files"]}

    def read_file(self, path: str) -> str:
        return self._client._get_text(f"/sandboxes/{self.sandbox_id}/files", params={"path": path})

    def list_files(self, dir_path: str = "") -> List[str]:
        return self._client._get(f"/sandboxes/{self.sandbox_id}/files/list", params={"dir": dir_path})["entries"]

    def run_command(
        self,
        cmd: str,
        args: Optional[List[str]] = None,
        sudo: bool = False,
        wait: bool = False,
    ) -> RemoteCommand:
        data = {"cmd": cmd, "args": args or [], "sudo": sudo, "wait": wait}
        result = self._client._post(f"/sandboxes/{self.sandbox_id}/commands", data)
        return RemoteCommand(result["cmd_id"], self._client, started_at=result.get("started_at"))

    def delete(self) -> None:
        self._client._delete(f"/sandboxes/{self.sandbox_id}")

    def __repr__(self) -> str:
        return f"RemoteSandbox(id='{self.sandbox_id[:8]}...')"


class SandboxClient(BaseClient):
    """
    Main client for interacting with a localbox server.
    """

    def create_sandbox(self, timeout: Optional[int] = None, ports: Optional[List[int]] = None) -> RemoteSandbox:
        """
        Create a new sandbox on the server.

        Args:
            timeout: Time to live in milliseconds; the server default when None.
            ports: Ports recorded on the sandbox.

        Raises:
            LocalboxClientError: If the request fails.
        """
        data: Dict[str, Any] = {"ports": ports or []}
        if timeout is not None:
            data["timeout"] = timeout
        info = self._post("/sandboxes", data)
        return RemoteSandbox(info["sandbox_id"], self, info)

    def get_sandbox(self, sandbox_id: str) -> RemoteSandbox:
        return RemoteSandbox(sandbox_id, self)

    def get_command(self, cmd_id: str) -> RemoteCommand:
        return RemoteCommand(cmd_id, self)

    def trigger_task(self, task_id: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._post(f"/tasks/{task_id}", payload)["output"]

    def health(self) -> Dict[str, Any]:
        return self._get("/health")
