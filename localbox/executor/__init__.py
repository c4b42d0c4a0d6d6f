"""
Command execution against workspaces.

Commands run as independent OS processes; their output is captured per
stream into an append-only log that can be fetched once, streamed live or
waited on.
"""
from localbox.executor.base import (
    CommandRecord,
    CommandResult,
    CommandState,
    CommandStatus,
    LogLine,
    LogStream,
)
from localbox.executor.channel import CommandChannel, EventType, ProcessEvent
from localbox.executor.engine import CommandEngine
from localbox.executor.resolver import build_argv, build_env, command_exists, resolve_program

__all__ = [
    # Records
    "CommandRecord",
    "CommandResult",
    "CommandState",
    "CommandStatus",
    "LogLine",
    "LogStream",
    # Process channel
    "CommandChannel",
    "EventType",
    "ProcessEvent",
    # Engine
    "CommandEngine",
    # Resolution
    "build_argv",
    "build_env",
    "command_exists",
    "resolve_program",
]
