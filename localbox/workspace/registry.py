"""
Workspace registry.

Owns the mapping from sandbox id to its working directory, creates and
removes the directories, and arms the automatic teardown of every workspace
on the runtime's ExpiryReaper.
"""
import asyncio
import logging
import os
import shutil
import time
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from localbox.config.defaults import WORKSPACE_DEFAULTS
from localbox.core.reaper import ExpiryReaper
from localbox.exceptions import (
    IOReadFault,
    IOWriteFault,
    ProvisioningError,
    WorkspaceNotFoundError,
    WriteFilesError,
)
from localbox.workspace.models import Workspace, WorkspaceFile

logger = logging.getLogger(__name__)


def expiry_key(workspace_id: str) -> str:
    return f"workspace:{workspace_id}"


class WorkspaceRegistry:
    """Registry of live workspaces, one directory per workspace id.

    All mutation happens on the thread that owns the event loop (API
    handlers, task units and reaper callbacks). A workspace is never
    observed half torn down: while its directory is being removed it is
    marked ``removing`` and hidden from every lookup, and the entry is
    dropped only once the directory is gone.
    """

    def __init__(
        self,
        base_dir: str = WORKSPACE_DEFAULTS.base_dir,
        reaper: Optional[ExpiryReaper] = None,
        default_timeout_ms: int = WORKSPACE_DEFAULTS.timeout_ms,
        removal_retry_ms: int = WORKSPACE_DEFAULTS.removal_retry_ms,
    ):
        self._base_dir = Path(base_dir)
        self._reaper = reaper
        self._default_timeout_ms = default_timeout_ms
        self._removal_retry_s = removal_retry_ms / 1000
        self._workspaces: Dict[str, Workspace] = {}
        self._removals: Dict[str, asyncio.Task] = {}

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def __len__(self) -> int:
        return len(self.list())

    def initialize(self) -> None:
        """Make sure the base directory exists."""
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to initialize sandbox base directory {self._base_dir}: {e}")

    def create(
        self,
        timeout_ms: Optional[int] = None,
        ports: Optional[Iterable[int]] = None,
    ) -> Workspace:
        """Provision a fresh workspace directory and register it.

        Args:
            timeout_ms: Time to live; falls back to the registry default when
                not given (or zero).
            ports: Port numbers recorded for compatibility. Nothing is bound.

        Raises:
            ProvisioningError: If the directory cannot be created.
        """
        workspace_id = str(uuid.uuid4())
        root = self._base_dir / workspace_id
        try:
            root.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise ProvisioningError(str(root), str(e)) from e

        workspace = Workspace(
            workspace_id=workspace_id,
            root_path=str(root.resolve()),
            created_at=time.time(),
            timeout_ms=timeout_ms or self._default_timeout_ms,
            ports=list(ports or []),
        )
        self._workspaces[workspace_id] = workspace

        if self._reaper is not None:
            self._reaper.schedule(
                expiry_key(workspace_id),
                workspace.timeout_ms / 1000,
                lambda: self._expire(workspace_id),
            )

        logger.info(f"Sandbox created: {workspace_id} (timeout={workspace.timeout_ms}ms)")
        return workspace

    def get(self, workspace_id: str) -> Optional[Workspace]:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None or workspace.removing:
            return None
        return workspace

    def require(self, workspace_id: str) -> Workspace:
        workspace = self.get(workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError(workspace_id)
        return workspace

    def list(self) -> List[Workspace]:
        return [workspace for workspace in self._workspaces.values() if not workspace.removing]

    def write_files(self, workspace_id: str, files: Iterable[WorkspaceFile]) -> int:
        """Write a batch of files, creating parent directories as needed.

        Every file is attempted even after a failure; existing files are
        overwritten.

        Returns:
            Number of files written.

        Raises:
            WorkspaceNotFoundError: If the workspace id is unknown.
            WriteFilesError: If at least one file could not be written.
        """
        workspace = self.require(workspace_id)
        failures: List[IOWriteFault] = []
        written = 0
        for file in files:
            try:
                target = self._resolve_path(workspace, file.path)
                target.parent.mkdir(parents=True, exist_ok=True)
                with target.open("w", encoding="utf-8", newline="") as handle:
                    handle.write(file.content)
                written += 1
            except (OSError, ValueError) as e:
                logger.error(f"Failed to write file {file.path} in sandbox {workspace_id}: {e}")
                failures.append(IOWriteFault(file.path, str(e)))

        if failures:
            raise WriteFilesError(workspace_id, failures)
        return written

    def read_file(self, workspace_id: str, path: str) -> str:
        """Read one file.

        Raises:
            WorkspaceNotFoundError: If the workspace id is unknown.
            IOReadFault: If the file cannot be read.
        """
        workspace = self.require(workspace_id)
        try:
            with self._resolve_path(workspace, path).open(encoding="utf-8", newline="") as handle:
                return handle.read()
        except (OSError, ValueError) as e:
            raise IOReadFault(path, str(e)) from e

    def read_files(self, workspace_id: str, paths: Iterable[str]) -> List[WorkspaceFile]:
        """Read a batch of files; unreadable files come back with empty content."""
        self.require(workspace_id)
        results = []
        for path in paths:
            try:
                content = self.read_file(workspace_id, path)
            except IOReadFault as e:
                logger.warning(f"Failed to read file {path} in sandbox {workspace_id}: {e.cause}")
                content = ""
            results.append(WorkspaceFile(path=path, content=content))
        return results

    def list_files(self, workspace_id: str, dir_path: str = "") -> List[str]:
        """List one directory level, relative to the workspace root.

        Directory entries carry a trailing ``/``. Errors yield an empty list.
        """
        workspace = self.require(workspace_id)
        try:
            target = self._resolve_path(workspace, dir_path)
            entries = sorted(target.iterdir(), key=lambda entry: entry.name)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to list files in {dir_path or '.'} of sandbox {workspace_id}: {e}")
            return []

        listing = []
        for entry in entries:
            relative = os.path.join(dir_path, entry.name) if dir_path else entry.name
            listing.append(f"{relative}/" if entry.is_dir() else relative)
        return listing

    def teardown(self, workspace_id: str) -> bool:
        """Remove a workspace's directory tree and registry entry.

        Idempotent. Returns True if a live workspace was removed; if the
        directory cannot be removed the workspace stays registered.
        """
        workspace = self.get(workspace_id)
        if workspace is None:
            return False

        try:
            self._remove_tree(workspace.root_path)
        except OSError as e:
            logger.error(f"Failed to cleanup sandbox {workspace_id}: {e}")
            return False

        self._drop(workspace_id)
        return True

    async def teardown_async(self, workspace_id: str) -> bool:
        """Same as :meth:`teardown`, with the tree removal off the event loop.

        The workspace is hidden from lookups while its directory is removed
        and becomes visible again if the removal fails.
        """
        workspace = self.get(workspace_id)
        if workspace is None:
            return False

        workspace.removing = True
        try:
            await asyncio.to_thread(self._remove_tree, workspace.root_path)
        except OSError as e:
            workspace.removing = False
            logger.error(f"Failed to cleanup sandbox {workspace_id}: {e}")
            return False

        self._drop(workspace_id)
        return True

    def teardown_all(self) -> int:
        """Tear down every live workspace. Returns how many were removed."""
        return sum(1 for workspace_id in list(self._workspaces) if self.teardown(workspace_id))

    async def wait_removals(self) -> None:
        """Wait for expiry removals that are still in flight."""
        pending = list(self._removals.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _expire(self, workspace_id: str) -> None:
        if self.get(workspace_id) is None or workspace_id in self._removals:
            return
        logger.info(f"Sandbox expired: {workspace_id}")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop: remove inline
            if not self.teardown(workspace_id):
                self._schedule_retry(workspace_id)
            return

        task = loop.create_task(self._expire_async(workspace_id))
        self._removals[workspace_id] = task
        task.add_done_callback(lambda _: self._removals.pop(workspace_id, None))

    async def _expire_async(self, workspace_id: str) -> None:
        if not await self.teardown_async(workspace_id):
            self._schedule_retry(workspace_id)

    def _schedule_retry(self, workspace_id: str) -> None:
        if self._reaper is None or workspace_id not in self._workspaces:
            return
        logger.warning(
            f"Sandbox {workspace_id} could not be removed, retrying in {self._removal_retry_s:.1f}s"
        )
        self._reaper.schedule(
            expiry_key(workspace_id),
            self._removal_retry_s,
            lambda: self._expire(workspace_id),
        )

    def _drop(self, workspace_id: str) -> None:
        del self._workspaces[workspace_id]
        if self._reaper is not None:
            self._reaper.cancel(expiry_key(workspace_id))
        logger.info(f"Sandbox removed: {workspace_id}")

    @staticmethod
    def _remove_tree(path: str) -> None:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass

    def _resolve_path(self, workspace: Workspace, path: str) -> Path:
        root = Path(workspace.root_path)
        resolved = (root / path.lstrip("/")).resolve()
        if resolved != root and root not in resolved.parents:
            raise ValueError(f"Path escapes sandbox: {path}")
        return resolved
