"""
Integration tests for SandboxClient.

These tests require a running localbox server (``localbox serve``).
"""
import pytest
import requests

from localbox.client.sandbox import SandboxClient
from localbox.exceptions import LocalboxClientError


SERVER_URL = "http://localhost:8000"


def server_is_running():
    try:
        response = requests.get(f"{SERVER_URL}/health", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


@pytest.fixture(scope="module")
def check_server():
    if not server_is_running():
        pytest.skip("localbox server not running at localhost:8000")


@pytest.fixture
def client(check_server):
    return SandboxClient(server_url=SERVER_URL, timeout=30)


@pytest.fixture
def sandbox(client):
    sandbox = client.create_sandbox(timeout=60_000)
    yield sandbox
    try:
        sandbox.delete()
    except LocalboxClientError:
        pass


@pytest.mark.integration
class TestSandboxIntegration:
    def test_files(self, sandbox):
        assert sandbox.write_files({"a.txt": "hello", "src/b.txt": "world"}) == 2
        assert sandbox.read_files(["a.txt"]) == {"a.txt": "hello"}
        assert sandbox.read_file("src/b.txt") == "world"
        assert sandbox.list_files() == ["a.txt", "src/"]

    def test_status_after_delete(self, client):
        sandbox = client.create_sandbox()
        assert sandbox.status() == "running"

        sandbox.delete()
        assert sandbox.status() == "stopped"


@pytest.mark.integration
class TestCommandIntegration:
    def test_run_and_wait(self, sandbox):
        command = sandbox.run_command("echo", ["ok"])
        result = command.wait(timeout=10)

        assert result["exit_code"] == 0
        assert result["stdout"] == "ok\n"

    def test_stream_logs(self, sandbox):
        command = sandbox.run_command("sh", ["-c", "echo one; sleep 0.2; echo two"])
        lines = list(command.stream_logs(timeout=10))

        assert "".join(line["data"] for line in lines) == "one\ntwo\n"
        assert command.status()["finished"] is True

    def test_missing_program(self, sandbox):
        result = sandbox.run_command("no-such-program-localbox-test", wait=True).wait()

        assert result["exit_code"] == 1
        assert result["stderr"].startswith("Error: ")

    def test_trigger_task(self, client, sandbox):
        output = client.trigger_task("read-files", {
            "sandbox_id": sandbox.sandbox_id,
            "paths": ["missing.txt"],
        })

        assert output == {"files": [{"path": "missing.txt", "content": ""}]}
