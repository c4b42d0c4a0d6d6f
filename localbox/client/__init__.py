"""
localbox client module.
"""
from localbox.client.base import BaseClient
from localbox.client.sandbox import SandboxClient, RemoteSandbox, RemoteCommand
from localbox.exceptions import LocalboxClientError

__all__ = [
    "BaseClient",
    "SandboxClient",
    "RemoteSandbox",
    "RemoteCommand",
    "LocalboxClientError",
]
