"""
Command runtime representations.
"""
import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class LogStream(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


class CommandState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class LogLine:
    """One timestamped chunk of output from a single stream."""
    data: str
    stream: LogStream
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "stream": self.stream.value,
            "timestamp": int(self.timestamp * 1000),
        }


@dataclass(frozen=True)
class CommandStatus:
    command_id: str
    finished: bool
    exit_code: Optional[int]
    state: CommandState

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cmd_id": self.command_id,
            "finished": self.finished,
            "exit_code": self.exit_code,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


@dataclass
class CommandRecord:
    """State of one submitted command.

    ``log_lines`` only ever grows, and only from the engine's consumer of this
    command's process channel. Observers read it and wait on ``changed``,
    which is swapped for a fresh event on every append or state change.
    """
    command_id: str
    workspace_id: str
    program: str
    args: List[str]
    elevated: bool = False
    started_at: float = field(default_factory=time.time)
    state: CommandState = CommandState.PENDING
    exit_code: Optional[int] = None
    log_lines: List[LogLine] = field(default_factory=list)
    killed: bool = False
    process: Optional[asyncio.subprocess.Process] = field(default=None, repr=False)
    _changed: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    @property
    def finished(self) -> bool:
        return self.state in (CommandState.FINISHED, CommandState.FAILED)

    @property
    def changed(self) -> asyncio.Event:
        return self._changed

    def is_running(self) -> bool:
        return self.state == CommandState.RUNNING

    def set_running(self, process: asyncio.subprocess.Process) -> None:
        self.process = process
        self.state = CommandState.RUNNING
        self._notify()

    def append(self, line: LogLine) -> None:
        self.log_lines.append(line)
        self._notify()

    def set_finished(self, exit_code: int) -> None:
        self.exit_code = exit_code
        self.state = CommandState.FINISHED
        self.process = None
        self._notify()

    def set_failed(self, message: str) -> None:
        self.log_lines.append(LogLine(data=message, stream=LogStream.STDERR, timestamp=time.time()))
        self.exit_code = 1
        self.state = CommandState.FAILED
        self.process = None
        self._notify()

    def output(self, stream: LogStream) -> str:
        return "".join(line.data for line in self.log_lines if line.stream == stream)

    def to_status(self) -> CommandStatus:
        return CommandStatus(
            command_id=self.command_id,
            finished=self.finished,
            exit_code=self.exit_code,
            state=self.state,
        )

    def to_result(self) -> CommandResult:
        return CommandResult(
            exit_code=self.exit_code if self.exit_code is not None else 0,
            stdout=self.output(LogStream.STDOUT),
            stderr=self.output(LogStream.STDERR),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cmd_id": self.command_id,
            "sandbox_id": self.workspace_id,
            "command": self.program,
            "args": list(self.args),
            "sudo": self.elevated,
            "started_at": int(self.started_at * 1000),
            "exit_code": self.exit_code,
            "finished": self.finished,
            "state": self.state.value,
        }

    async def wait_changed(self, changed: asyncio.Event, timeout: float) -> None:
        """Suspend until ``changed`` fires or ``timeout`` seconds pass."""
        try:
            await asyncio.wait_for(changed.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass

    def _notify(self) -> None:
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
