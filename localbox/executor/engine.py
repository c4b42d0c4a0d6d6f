"""
Command engine.

Spawns OS processes rooted at a workspace directory and keeps, per command,
the accumulated log and terminal status. Each process gets a CommandChannel:
two pipe readers push output chunks onto it, a supervisor pushes the final
exit (or error) once both pipes are drained, and a single consumer applies
the events to the CommandRecord. Observers (``logs``, ``stream``, ``wait``)
only read the record.
"""
import asyncio
import codecs
import logging
import signal
import subprocess
import uuid
from typing import AsyncIterator, Dict, List, Optional, Sequence

from localbox.config.defaults import RuntimeConfig
from localbox.core.reaper import ExpiryReaper
from localbox.exceptions import CommandNotFoundError, ExecutionFault
from localbox.executor.base import (
    CommandRecord,
    CommandResult,
    CommandStatus,
    LogLine,
    LogStream,
)
from localbox.executor.channel import CommandChannel, EventType, ProcessEvent
from localbox.executor.resolver import build_argv, build_env, resolve_program
from localbox.workspace.registry import WorkspaceRegistry

logger = logging.getLogger(__name__)

_STREAM_FOR_EVENT = {
    EventType.STDOUT: LogStream.STDOUT,
    EventType.STDERR: LogStream.STDERR,
}


def gc_key(command_id: str) -> str:
    return f"command:{command_id}"


class CommandEngine:
    """Runs commands against workspaces and serves their logs."""

    def __init__(
        self,
        registry: WorkspaceRegistry,
        reaper: Optional[ExpiryReaper] = None,
        config: Optional[RuntimeConfig] = None,
    ):
        self._registry = registry
        self._reaper = reaper
        self._config = config or RuntimeConfig()
        self._commands: Dict[str, CommandRecord] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._commands)

    async def submit(
        self,
        workspace_id: str,
        program: str,
        args: Optional[Sequence[str]] = None,
        elevated: bool = False,
    ) -> CommandRecord:
        """Spawn ``program`` in a workspace and return without waiting.

        Spawn failures do not raise; they leave the returned command failed
        with exit code 1 and the error on its stderr log.

        Raises:
            WorkspaceNotFoundError: If the workspace id is unknown.
        """
        workspace = self._registry.require(workspace_id)
        record = CommandRecord(
            command_id=str(uuid.uuid4()),
            workspace_id=workspace_id,
            program=program,
            args=list(args or []),
            elevated=elevated,
        )
        self._commands[record.command_id] = record

        resolved = resolve_program(program, self._config.package_manager_fallbacks)
        argv = build_argv(resolved, record.args, elevated, self._config.elevation_wrapper)
        env = build_env(workspace.root_path, self._config.fallback_path)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=workspace.root_path,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self._fail(record, ExecutionFault(record.command_id, str(e)))
            return record

        record.set_running(process)
        logger.debug(f"Command {record.command_id} started: {' '.join(argv)} (pid={process.pid})")
        self._tasks[record.command_id] = asyncio.create_task(self._run(record, process))
        return record

    def get(self, command_id: str) -> Optional[CommandRecord]:
        return self._commands.get(command_id)

    def require(self, command_id: str) -> CommandRecord:
        record = self._commands.get(command_id)
        if record is None:
            raise CommandNotFoundError(command_id)
        return record

    def list(self, workspace_id: Optional[str] = None) -> List[CommandRecord]:
        return [
            record for record in self._commands.values()
            if workspace_id is None or record.workspace_id == workspace_id
        ]

    def status(self, command_id: str) -> CommandStatus:
        return self.require(command_id).to_status()

    def logs(self, command_id: str) -> List[LogLine]:
        """Snapshot of every log line appended so far."""
        return list(self.require(command_id).log_lines)

    def stream(self, command_id: str) -> AsyncIterator[LogLine]:
        """Replay the log from the head, then follow it until the command ends.

        The lookup happens immediately, so an unknown id raises here rather
        than on first iteration.

        Raises:
            CommandNotFoundError: If the command id is unknown.
        """
        return self._follow(self.require(command_id))

    async def wait(self, command_id: str, timeout: Optional[float] = None) -> CommandResult:
        """Suspend until the command finishes and return its collected output.

        Raises:
            CommandNotFoundError: If the command id is unknown.
            asyncio.TimeoutError: If ``timeout`` seconds pass first.
        """
        record = self.require(command_id)
        if timeout is None:
            await self._until_finished(record)
        else:
            await asyncio.wait_for(self._until_finished(record), timeout=timeout)
        return record.to_result()

    def kill(self, command_id: str, sig: int = signal.SIGTERM) -> bool:
        """Ask a running command to terminate.

        The command still finishes through its normal exit notification.

        Returns:
            True if a signal was sent.
        """
        record = self._commands.get(command_id)
        if record is None or record.killed or not record.is_running() or record.process is None:
            return False
        try:
            record.process.send_signal(sig)
        except ProcessLookupError:
            return False
        record.killed = True
        logger.info(f"Command {command_id} signalled ({signal.Signals(sig).name})")
        return True

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Terminate live processes and stop their supervisors.

        Commands still running after ``timeout`` are killed and marked failed
        before their supervisors are cancelled.
        """
        for command_id in list(self._tasks):
            self.kill(command_id)
        tasks = dict(self._tasks)
        if tasks:
            _, pending = await asyncio.wait(tasks.values(), timeout=timeout)
            for command_id, task in tasks.items():
                if task not in pending:
                    continue
                record = self._commands.get(command_id)
                if record is not None and not record.finished:
                    self._abandon(record)
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    def _abandon(self, record: CommandRecord) -> None:
        if record.process is not None:
            try:
                record.process.kill()
            except ProcessLookupError:
                pass
        record.killed = True
        self._fail(record, ExecutionFault(record.command_id, "terminated during shutdown"))

    async def _follow(self, record: CommandRecord) -> AsyncIterator[LogLine]:
        index = 0
        while True:
            changed = record.changed
            lines = record.log_lines
            while index < len(lines):
                yield lines[index]
                index += 1
            if record.finished and index >= len(record.log_lines):
                return
            await record.wait_changed(changed, self._config.poll_interval)

    async def _until_finished(self, record: CommandRecord) -> None:
        while not record.finished:
            await record.wait_changed(record.changed, self._config.poll_interval)

    async def _run(self, record: CommandRecord, process: asyncio.subprocess.Process) -> None:
        channel = CommandChannel()
        supervisor = asyncio.create_task(self._supervise(process, channel))
        try:
            await self._consume(record, channel)
        finally:
            if not supervisor.done():
                supervisor.cancel()
            await asyncio.gather(supervisor, return_exceptions=True)
            self._tasks.pop(record.command_id, None)

    async def _supervise(self, process: asyncio.subprocess.Process, channel: CommandChannel) -> None:
        try:
            await asyncio.gather(
                self._pump(process.stdout, EventType.STDOUT, channel),
                self._pump(process.stderr, EventType.STDERR, channel),
            )
            exit_code = await process.wait()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            channel.send(ProcessEvent.error(str(e)))
        else:
            channel.send(ProcessEvent.exit(exit_code))

    async def _pump(
        self,
        reader: asyncio.StreamReader,
        event_type: EventType,
        channel: CommandChannel,
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await reader.read(self._config.read_chunk_size)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                channel.send(ProcessEvent.output(event_type, text))
            if not chunk:
                return

    async def _consume(self, record: CommandRecord, channel: CommandChannel) -> None:
        while True:
            event = await channel.receive()
            if event.event_type in _STREAM_FOR_EVENT:
                record.append(LogLine(
                    data=event.data["text"],
                    stream=_STREAM_FOR_EVENT[event.event_type],
                    timestamp=event.timestamp,
                ))
            elif event.event_type == EventType.EXIT:
                record.set_finished(event.data["exit_code"])
                logger.info(f"Command {record.command_id} finished with exit code {record.exit_code}")
                self._schedule_collection(record)
                return
            else:
                self._fail(record, ExecutionFault(record.command_id, event.data["message"]))
                return

    def _fail(self, record: CommandRecord, fault: ExecutionFault) -> None:
        record.set_failed(f"Error: {fault.cause}\n")
        logger.warning(str(fault))
        self._schedule_collection(record)

    def _schedule_collection(self, record: CommandRecord) -> None:
        if self._reaper is None:
            return
        self._reaper.schedule(
            gc_key(record.command_id),
            self._config.grace_period_s,
            lambda: self._collect(record.command_id),
        )

    def _collect(self, command_id: str) -> None:
        if self._commands.pop(command_id, None) is not None:
            logger.debug(f"Command {command_id} collected")
