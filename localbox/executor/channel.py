"""
Per-command process event channel.

The process adapter pushes output chunks and the final exit (or error) onto
the channel; the engine's consumer is the only reader and the only writer of
the command's log.
"""
import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class EventType(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"
    EXIT = "exit"
    ERROR = "error"


@dataclass
class ProcessEvent:
    event_type: EventType
    data: Dict[str, Any]
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def output(cls, event_type: EventType, text: str) -> "ProcessEvent":
        return cls(event_type=event_type, data={"text": text})

    @classmethod
    def exit(cls, exit_code: int) -> "ProcessEvent":
        return cls(event_type=EventType.EXIT, data={"exit_code": exit_code})

    @classmethod
    def error(cls, message: str) -> "ProcessEvent":
        return cls(event_type=EventType.ERROR, data={"message": message})

    @property
    def is_terminal(self) -> bool:
        return self.event_type in (EventType.EXIT, EventType.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type.value,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessEvent":
        return cls(event_type=EventType(data["type"]), data=data.get("data", {}))


class CommandChannel:
    """Unbounded FIFO between a process's pipe readers and its consumer."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()

    def send(self, event: ProcessEvent) -> None:
        self._queue.put_nowait(event)

    async def receive(self) -> ProcessEvent:
        return await self._queue.get()

    def receive_nowait(self) -> Optional[ProcessEvent]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    @property
    def size(self) -> int:
        return self._queue.qsize()
