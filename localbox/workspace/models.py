"""
Workspace data model.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List


@dataclass
class Workspace:
    """An isolated working directory plus its metadata (a "sandbox")."""
    workspace_id: str
    root_path: str
    created_at: float  # epoch seconds
    timeout_ms: int
    ports: List[int] = field(default_factory=list)
    removing: bool = field(default=False, repr=False)

    @property
    def expires_at(self) -> float:
        return self.created_at + self.timeout_ms / 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sandbox_id": self.workspace_id,
            "work_dir": self.root_path,
            "created_at": int(self.created_at * 1000),
            "timeout": self.timeout_ms,
            "ports": list(self.ports),
        }


@dataclass(frozen=True)
class WorkspaceFile:
    path: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkspaceFile":
        return cls(path=data["path"], content=data.get("content", ""))
