"""
Centralized configuration defaults for localbox.

This module provides a single source of truth for all default configurations
used across the sandbox runtime, the API server and the task layer.
"""
import os
import tempfile
from dataclasses import dataclass, field
from typing import Dict, Any, Optional


def _default_fallbacks() -> Dict[str, str]:
    return {"pnpm": "npm", "yarn": "npm"}


@dataclass(frozen=True)
class WorkspaceDefaults:
    """Default workspace provisioning configuration."""
    base_dir: str = os.path.join(tempfile.gettempdir(), "localbox-sandboxes")
    timeout_ms: int = 600_000  # 10 minutes
    removal_retry_ms: int = 30_000  # delay before retrying a failed expiry


@dataclass(frozen=True)
class CommandDefaults:
    """Default command execution configuration."""
    poll_interval: float = 0.1  # seconds
    grace_period_s: float = 300.0  # retention after a command finishes
    read_chunk_size: int = 4096
    elevation_wrapper: str = "sudo"
    fallback_path: str = "/usr/local/bin:/usr/bin:/bin"
    package_manager_fallbacks: Dict[str, str] = field(default_factory=_default_fallbacks)


@dataclass(frozen=True)
class RetryDefaults:
    """Default retry policy for task-queue units."""
    max_attempts: int = 3
    min_timeout_s: float = 1.0
    max_timeout_s: float = 10.0
    factor: float = 2.0
    randomize: bool = True


@dataclass(frozen=True)
class ServerDefaults:
    """Default server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"


# Global default instances
WORKSPACE_DEFAULTS = WorkspaceDefaults()
COMMAND_DEFAULTS = CommandDefaults()
RETRY_DEFAULTS = RetryDefaults()
SERVER_DEFAULTS = ServerDefaults()


@dataclass
class RuntimeConfig:
    """Effective configuration of one sandbox runtime.

    Built from the ``*_DEFAULTS`` instances and overridden field by field
    (CLI flags, tests).
    """
    base_dir: str = WORKSPACE_DEFAULTS.base_dir
    default_timeout_ms: int = WORKSPACE_DEFAULTS.timeout_ms
    removal_retry_ms: int = WORKSPACE_DEFAULTS.removal_retry_ms
    poll_interval: float = COMMAND_DEFAULTS.poll_interval
    grace_period_s: float = COMMAND_DEFAULTS.grace_period_s
    read_chunk_size: int = COMMAND_DEFAULTS.read_chunk_size
    elevation_wrapper: str = COMMAND_DEFAULTS.elevation_wrapper
    fallback_path: str = COMMAND_DEFAULTS.fallback_path
    package_manager_fallbacks: Dict[str, str] = field(
        default_factory=lambda: dict(COMMAND_DEFAULTS.package_manager_fallbacks)
    )
    teardown_on_close: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_dir": self.base_dir,
            "default_timeout_ms": self.default_timeout_ms,
            "removal_retry_ms": self.removal_retry_ms,
            "poll_interval": self.poll_interval,
            "grace_period_s": self.grace_period_s,
            "read_chunk_size": self.read_chunk_size,
            "elevation_wrapper": self.elevation_wrapper,
            "package_manager_fallbacks": dict(self.package_manager_fallbacks),
            "teardown_on_close": self.teardown_on_close,
        }


def get_default_server_config() -> Dict[str, Any]:
    """Get default server configuration as a dictionary."""
    return {
        "host": SERVER_DEFAULTS.host,
        "port": SERVER_DEFAULTS.port,
        "log_level": SERVER_DEFAULTS.log_level,
    }


def get_default_runtime_config(base_dir: Optional[str] = None) -> RuntimeConfig:
    """Get a RuntimeConfig with defaults, optionally rooted at ``base_dir``."""
    if base_dir is None:
        return RuntimeConfig()
    return RuntimeConfig(base_dir=base_dir)
