"""
Unit tests for SandboxClient.
"""
import json

import pytest
from unittest.mock import MagicMock, patch

from localbox.client.sandbox import SandboxClient, RemoteSandbox, RemoteCommand
from localbox.exceptions import LocalboxClientError


def _response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.text = text
    return response


class TestSandboxClient:
    def test_creation(self):
        client = SandboxClient(server_url="http://localhost:8000/")
        assert client.server_url == "http://localhost:8000"

    def test_default_server_url(self):
        assert SandboxClient().server_url == "http://localhost:8000"

    @patch("localbox.client.base.requests")
    def test_create_sandbox(self, mock_requests):
        mock_requests.post.return_value = _response(payload={
            "sandbox_id": "sb-123",
            "work_dir": "/tmp/sb-123",
            "created_at": 1,
            "timeout": 5000,
            "ports": [],
        })

        sandbox = SandboxClient().create_sandbox(timeout=5000)

        assert isinstance(sandbox, RemoteSandbox)
        assert sandbox.sandbox_id == "sb-123"
        assert sandbox.info["timeout"] == 5000
        mock_requests.post.assert_called_once_with(
            "http://localhost:8000/sandboxes",
            json={"ports": [], "timeout": 5000},
            timeout=None,
        )

    @patch("localbox.client.base.requests")
    def test_http_error(self, mock_requests):
        mock_requests.post.return_value = _response(status_code=404, text="Sandbox missing not found")

        with pytest.raises(LocalboxClientError) as exc_info:
            SandboxClient().create_sandbox()

        assert exc_info.value.status_code == 404
        assert exc_info.value.response_text == "Sandbox missing not found"

    @patch("localbox.client.base.requests")
    def test_trigger_task(self, mock_requests):
        mock_requests.post.return_value = _response(payload={
            "status": "success",
            "task_id": "read-files",
            "output": {"files": []},
        })

        output = SandboxClient().trigger_task("read-files", {"sandbox_id": "sb", "paths": []})

        assert output == {"files": []}


class TestRemoteSandbox:
    @patch("localbox.client.base.requests")
    def test_write_files(self, mock_requests):
        mock_requests.post.return_value = _response(payload={"success": True, "files_written": 1})
        sandbox = SandboxClient().get_sandbox("sb-1")

        assert sandbox.write_files({"a.txt": "hello"}) == 1
        mock_requests.post.assert_called_once_with(
            "http://localhost:8000/sandboxes/sb-1/files",
            json={"files": [{"path": "a.txt", "content": "hello"}]},
            timeout=None,
        )

    @patch("localbox.client.base.requests")
    def test_read_files(self, mock_requests):
        mock_requests.post.return_value = _response(payload={
            "files": [{"path": "a.txt", "content": "hello"}],
        })

        assert SandboxClient().get_sandbox("sb-1").read_files(["a.txt"]) == {"a.txt": "hello"}

    @patch("localbox.client.base.requests")
    def test_read_file_returns_text(self, mock_requests):
        mock_requests.get.return_value = _response(text="# notes")

        assert SandboxClient().get_sandbox("sb-1").read_file("notes.md") == "# notes"

    @patch("localbox.client.base.requests")
    def test_run_command(self, mock_requests):
        mock_requests.post.return_value = _response(payload={
            "cmd_id": "cmd-1",
            "started_at": 1000,
            "finished": False,
        })

        command = SandboxClient().get_sandbox("sb-1").run_command("npm", ["install"])

        assert isinstance(command, RemoteCommand)
        assert command.cmd_id == "cmd-1"
        assert command.started_at == 1000

    @patch("localbox.client.base.requests")
    def test_delete(self, mock_requests):
        mock_requests.delete.return_value = _response(payload={"status": "success"})

        SandboxClient().get_sandbox("sb-1").delete()

        mock_requests.delete.assert_called_once_with("http://localhost:8000/sandboxes/sb-1", timeout=None)


class TestRemoteCommand:
    @patch("localbox.client.base.requests")
    def test_wait(self, mock_requests):
        mock_requests.post.return_value = _response(payload={
            "cmd_id": "cmd-1",
            "exit_code": 0,
            "stdout": "ok\n",
            "stderr": "",
        })

        result = SandboxClient().get_command("cmd-1").wait(timeout=3)

        assert result["stdout"] == "ok\n"
        mock_requests.post.assert_called_once_with(
            "http://localhost:8000/commands/cmd-1/wait",
            json={"timeout": 3},
            timeout=None,
        )

    @patch("localbox.client.sandbox.websocket")
    def test_stream_logs(self, mock_websocket):
        ws = MagicMock()
        ws.recv.side_effect = [
            json.dumps({"type": "log", "data": {"data": "a\n", "stream": "stdout", "timestamp": 1}}),
            json.dumps({"type": "log", "data": {"data": "b\n", "stream": "stderr", "timestamp": 2}}),
            json.dumps({"type": "finish_command", "data": {"cmd_id": "cmd-1", "exit_code": 0}}),
        ]
        mock_websocket.create_connection.return_value = ws

        client = SandboxClient(server_url="https://box.example.com")
        lines = list(client.get_command("cmd-1").stream_logs())

        assert [line["data"] for line in lines] == ["a\n", "b\n"]
        mock_websocket.create_connection.assert_called_once_with(
            "wss://box.example.com/commands/cmd-1/stream", timeout=None
        )
        ws.close.assert_called_once()

    @patch("localbox.client.sandbox.websocket")
    def test_stream_logs_error(self, mock_websocket):
        ws = MagicMock()
        ws.recv.return_value = json.dumps({"type": "error", "data": {"error": "Command x not found"}})
        mock_websocket.create_connection.return_value = ws

        with pytest.raises(LocalboxClientError):
            list(SandboxClient().get_command("x").stream_logs())
        ws.close.assert_called_once()
