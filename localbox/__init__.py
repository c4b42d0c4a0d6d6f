"""
localbox - Local sandbox runtime for agent-driven code execution.
"""
__version__ = "0.1.0"

from localbox.client import (
    SandboxClient,
    RemoteSandbox,
    RemoteCommand,
)
from localbox.config.defaults import RuntimeConfig
from localbox.core.runtime import SandboxRuntime

__all__ = [
    "SandboxClient",
    "RemoteSandbox",
    "RemoteCommand",
    "RuntimeConfig",
    "SandboxRuntime",
]
