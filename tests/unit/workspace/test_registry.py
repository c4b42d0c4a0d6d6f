"""
Unit tests for workspace/registry module.
"""
import asyncio
import os
import shutil
import time

import pytest

from localbox.exceptions import (
    IOReadFault,
    ProvisioningError,
    WorkspaceNotFoundError,
    WriteFilesError,
)
from localbox.workspace.models import Workspace, WorkspaceFile
from localbox.workspace.registry import WorkspaceRegistry, expiry_key


class TestCreate:
    def test_create_provisions_directory(self, registry, base_dir):
        workspace = registry.create(timeout_ms=600_000)

        assert os.path.isdir(workspace.root_path)
        assert os.path.dirname(workspace.root_path) == os.path.realpath(base_dir)
        assert workspace.timeout_ms == 600_000
        assert registry.get(workspace.workspace_id) is workspace
        assert len(registry) == 1

    def test_ids_and_roots_are_unique(self, registry):
        first = registry.create()
        second = registry.create()

        assert first.workspace_id != second.workspace_id
        assert first.root_path != second.root_path

    def test_default_timeout(self, base_dir):
        registry = WorkspaceRegistry(base_dir=base_dir, default_timeout_ms=1234)
        registry.initialize()

        assert registry.create().timeout_ms == 1234

    def test_create_arms_expiry(self, registry, reaper):
        workspace = registry.create(timeout_ms=5000)

        assert reaper.is_scheduled(expiry_key(workspace.workspace_id))

    def test_ports_recorded(self, registry):
        workspace = registry.create(ports=[3000, 8080])

        assert workspace.ports == [3000, 8080]
        assert workspace.to_dict()["ports"] == [3000, 8080]

    def test_provisioning_failure(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        registry = WorkspaceRegistry(base_dir=str(blocker))

        with pytest.raises(ProvisioningError):
            registry.create()
        assert len(registry) == 0


class TestLookup:
    def test_get_unknown_returns_none(self, registry):
        assert registry.get("missing") is None

    def test_require_unknown_raises(self, registry):
        with pytest.raises(WorkspaceNotFoundError) as exc_info:
            registry.require("missing")
        assert exc_info.value.workspace_id == "missing"

    def test_list(self, registry):
        first = registry.create()
        second = registry.create()

        ids = {workspace.workspace_id for workspace in registry.list()}
        assert ids == {first.workspace_id, second.workspace_id}


class TestFiles:
    def test_write_then_read(self, registry):
        workspace = registry.create(timeout_ms=600_000)

        written = registry.write_files(workspace.workspace_id, [WorkspaceFile("a.txt", "hello")])
        files = registry.read_files(workspace.workspace_id, ["a.txt"])

        assert written == 1
        assert files == [WorkspaceFile("a.txt", "hello")]

    def test_write_creates_parents_and_overwrites(self, registry):
        workspace = registry.create()
        registry.write_files(workspace.workspace_id, [WorkspaceFile("src/deep/app.py", "v1")])
        registry.write_files(workspace.workspace_id, [WorkspaceFile("src/deep/app.py", "v2")])

        assert registry.read_file(workspace.workspace_id, "src/deep/app.py") == "v2"

    def test_line_endings_are_preserved(self, registry):
        workspace = registry.create()
        content = "line1\r\nline2\rend"
        registry.write_files(workspace.workspace_id, [WorkspaceFile("win.txt", content)])

        with open(os.path.join(workspace.root_path, "win.txt"), "rb") as handle:
            assert handle.read() == b"line1\r\nline2\rend"
        assert registry.read_file(workspace.workspace_id, "win.txt") == content

    def test_leading_slash_is_relative_to_root(self, registry):
        workspace = registry.create()
        registry.write_files(workspace.workspace_id, [WorkspaceFile("/b.txt", "rooted")])

        assert os.path.isfile(os.path.join(workspace.root_path, "b.txt"))

    def test_partial_failure_attempts_every_file(self, registry):
        workspace = registry.create()
        files = [
            WorkspaceFile("ok-1.txt", "one"),
            WorkspaceFile("../escape.txt", "nope"),
            WorkspaceFile("ok-2.txt", "two"),
        ]

        with pytest.raises(WriteFilesError) as exc_info:
            registry.write_files(workspace.workspace_id, files)

        assert exc_info.value.failed_paths == ["../escape.txt"]
        assert "escapes sandbox" in exc_info.value.first.cause
        assert registry.read_file(workspace.workspace_id, "ok-1.txt") == "one"
        assert registry.read_file(workspace.workspace_id, "ok-2.txt") == "two"

    def test_write_unknown_workspace(self, registry):
        with pytest.raises(WorkspaceNotFoundError):
            registry.write_files("missing", [WorkspaceFile("a.txt", "x")])

    def test_read_missing_file_raises(self, registry):
        workspace = registry.create()

        with pytest.raises(IOReadFault) as exc_info:
            registry.read_file(workspace.workspace_id, "nope.txt")
        assert exc_info.value.path == "nope.txt"

    def test_read_files_degrades_to_empty_content(self, registry):
        workspace = registry.create()
        registry.write_files(workspace.workspace_id, [WorkspaceFile("a.txt", "hello")])

        files = registry.read_files(workspace.workspace_id, ["a.txt", "missing.txt"])

        assert files == [WorkspaceFile("a.txt", "hello"), WorkspaceFile("missing.txt", "")]

    def test_read_files_unknown_workspace(self, registry):
        with pytest.raises(WorkspaceNotFoundError):
            registry.read_files("missing", ["a.txt"])

    def test_list_files(self, registry):
        workspace = registry.create()
        registry.write_files(workspace.workspace_id, [
            WorkspaceFile("b.txt", "b"),
            WorkspaceFile("a.txt", "a"),
            WorkspaceFile("src/app.py", "app"),
        ])

        assert registry.list_files(workspace.workspace_id) == ["a.txt", "b.txt", "src/"]
        assert registry.list_files(workspace.workspace_id, "src") == ["src/app.py"]

    def test_list_missing_directory_is_empty(self, registry):
        workspace = registry.create()

        assert registry.list_files(workspace.workspace_id, "nope") == []

    def test_list_unknown_workspace(self, registry):
        with pytest.raises(WorkspaceNotFoundError):
            registry.list_files("missing")


class TestTeardown:
    def test_teardown_removes_directory_and_entry(self, registry, reaper):
        workspace = registry.create()

        assert registry.teardown(workspace.workspace_id) is True
        assert registry.get(workspace.workspace_id) is None
        assert not os.path.exists(workspace.root_path)
        assert not reaper.is_scheduled(expiry_key(workspace.workspace_id))

    def test_teardown_is_idempotent(self, registry):
        workspace = registry.create()
        registry.teardown(workspace.workspace_id)

        assert registry.teardown(workspace.workspace_id) is False
        assert registry.teardown("never-existed") is False

    def test_teardown_tolerates_missing_directory(self, registry):
        workspace = registry.create()
        os.rmdir(workspace.root_path)

        assert registry.teardown(workspace.workspace_id) is True
        assert registry.get(workspace.workspace_id) is None

    def test_teardown_all(self, registry):
        registry.create()
        registry.create()

        assert registry.teardown_all() == 2
        assert len(registry) == 0

    def test_expiry_fires_after_timeout(self, registry, reaper, clock):
        workspace = registry.create(timeout_ms=50)

        async def scenario():
            assert reaper.run_due() == []
            clock.advance(0.1)
            fired = reaper.run_due()
            assert registry.get(workspace.workspace_id) is None
            await registry.wait_removals()
            return fired

        fired = asyncio.run(scenario())

        assert fired == [expiry_key(workspace.workspace_id)]
        assert registry.get(workspace.workspace_id) is None
        assert len(registry) == 0
        assert not os.path.exists(workspace.root_path)

    def test_expiry_removal_does_not_block_the_loop(self, registry, reaper, clock, monkeypatch):
        real_rmtree = shutil.rmtree

        def slow_rmtree(path, *args, **kwargs):
            time.sleep(0.2)
            real_rmtree(path, *args, **kwargs)

        monkeypatch.setattr("localbox.workspace.registry.shutil.rmtree", slow_rmtree)
        workspace = registry.create(timeout_ms=50)

        async def scenario():
            clock.advance(0.1)
            reaper.run_due()
            assert registry.get(workspace.workspace_id) is None
            assert registry.list() == []

            started = time.monotonic()
            await asyncio.sleep(0.05)
            elapsed = time.monotonic() - started

            await registry.wait_removals()
            return elapsed

        elapsed = asyncio.run(scenario())

        assert elapsed < 0.15
        assert not os.path.exists(workspace.root_path)

    def test_failed_expiry_is_rescheduled(self, base_dir, reaper, clock, monkeypatch):
        registry = WorkspaceRegistry(base_dir=base_dir, reaper=reaper, removal_retry_ms=1000)
        registry.initialize()
        workspace = registry.create(timeout_ms=50)
        key = expiry_key(workspace.workspace_id)

        def busy_rmtree(path, *args, **kwargs):
            raise OSError("busy")

        async def expire():
            reaper.run_due()
            await registry.wait_removals()

        monkeypatch.setattr("localbox.workspace.registry.shutil.rmtree", busy_rmtree)
        clock.advance(0.1)
        asyncio.run(expire())

        assert registry.get(workspace.workspace_id) is workspace
        assert reaper.is_scheduled(key)
        assert os.path.isdir(workspace.root_path)

        monkeypatch.undo()
        clock.advance(0.5)
        asyncio.run(expire())
        assert registry.get(workspace.workspace_id) is workspace

        clock.advance(0.6)
        asyncio.run(expire())

        assert registry.get(workspace.workspace_id) is None
        assert not reaper.is_scheduled(key)
        assert not os.path.exists(workspace.root_path)


class TestWorkspaceModel:
    def test_to_dict(self):
        workspace = Workspace(
            workspace_id="ws-1",
            root_path="/tmp/ws-1",
            created_at=10.5,
            timeout_ms=2000,
        )

        assert workspace.to_dict() == {
            "sandbox_id": "ws-1",
            "work_dir": "/tmp/ws-1",
            "created_at": 10500,
            "timeout": 2000,
            "ports": [],
        }
        assert workspace.expires_at == 12.5

    def test_file_from_dict_defaults_content(self):
        assert WorkspaceFile.from_dict({"path": "a.txt"}) == WorkspaceFile("a.txt", "")
