"""
Workspace registry: provisioning, file access and expiry of sandbox directories.
"""
from localbox.workspace.models import Workspace, WorkspaceFile
from localbox.workspace.registry import WorkspaceRegistry

__all__ = ["Workspace", "WorkspaceFile", "WorkspaceRegistry"]
