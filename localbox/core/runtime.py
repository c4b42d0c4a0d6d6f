"""
Sandbox runtime: one reaper, one workspace registry and one command engine.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional

from localbox.config.defaults import RuntimeConfig
from localbox.core.reaper import ExpiryReaper
from localbox.executor.engine import CommandEngine
from localbox.workspace.registry import WorkspaceRegistry

logger = logging.getLogger(__name__)


class SandboxRuntime:
    """Owns all sandbox state for one process.

    Collaborators (API routes, task units, agent tools) receive the runtime
    by reference; nothing here is module-global, so tests build a fresh
    runtime per case.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or RuntimeConfig()
        self.reaper = ExpiryReaper(clock=clock)
        self.registry = WorkspaceRegistry(
            base_dir=self.config.base_dir,
            reaper=self.reaper,
            default_timeout_ms=self.config.default_timeout_ms,
            removal_retry_ms=self.config.removal_retry_ms,
        )
        self.engine = CommandEngine(self.registry, self.reaper, self.config)
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Prepare the base directory and start the maintenance loop."""
        if self._started:
            return
        self.registry.initialize()
        await self.reaper.start()
        self._started = True
        logger.info(f"Sandbox runtime started (base_dir={self.config.base_dir})")

    async def close(self) -> None:
        """Stop commands and pending expirations; optionally remove workspaces."""
        await self.engine.shutdown()
        await self.reaper.stop()
        await self.registry.wait_removals()
        if self.config.teardown_on_close:
            removed = self.registry.teardown_all()
            if removed:
                logger.info(f"Removed {removed} sandbox(es) on shutdown")
        self._started = False
        logger.info("Sandbox runtime closed")

    def health(self) -> Dict[str, Any]:
        return {
            "started": self._started,
            "sandboxes": len(self.registry),
            "commands": len(self.engine),
            "pending_expirations": self.reaper.pending(),
        }

    async def __aenter__(self) -> "SandboxRuntime":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
