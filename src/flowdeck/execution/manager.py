"""Process manager for shell and domain commands.

Spawns one OS process per command, tracks it in an in-flight registry,
streams its output line by line as ``CommandOutput`` events, and
resolves a structured ``ExecutionResult`` when the process exits.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import shlex
import signal
import uuid
from typing import Awaitable, Callable

from flowdeck.domain.models import (
    AgentSpec,
    CommandOutput,
    EventLevel,
    ExecutionContext,
    ExecutionResult,
    ProcessCategory,
    ProcessRecord,
    ProcessStatus,
)
from flowdeck.execution.classifier import LineClassifier, Stream, classify_line

logger = logging.getLogger(__name__)

EventSink = Callable[[CommandOutput], Awaitable[object]]

# Bytes read from a pipe per chunk
CHUNK_SIZE = 4096

CANCELLED = "cancelled"
TIMED_OUT = "timed_out"


class ProcessHandle:
    """Handle to a spawned process and its pending result."""

    def __init__(self, record: ProcessRecord, result: asyncio.Future[ExecutionResult]) -> None:
        self._record = record
        self._result = result

    @property
    def process_id(self) -> str:
        return self._record.process_id

    @property
    def record(self) -> ProcessRecord:
        return self._record

    def done(self) -> bool:
        return self._result.done()

    async def wait(self) -> ExecutionResult:
        """Wait for the process to exit.

        Cancelling the waiter does not cancel the process itself.
        """
        return await asyncio.shield(self._result)


class ProcessManager:
    """Spawns and tracks external processes.

    All registry mutations happen on the event loop thread, so the
    registries need no locking. There is no admission control: every
    spawn starts a process immediately.

    Example usage::

        manager = ProcessManager(emit=broadcaster.broadcast, workspace="/workspace")
        handle = await manager.spawn("npm test")
        result = await handle.wait()
    """

    def __init__(
        self,
        emit: EventSink | None = None,
        shell: str = "/bin/bash",
        workspace: str = ".",
        domain_env: dict[str, str] | None = None,
        shell_source: str = "shell",
        domain_source: str = "claude-flow",
        system_source: str = "flowdeck",
        default_timeout: float | None = None,
        kill_grace: float = 2.0,
        classifier: LineClassifier | None = None,
    ) -> None:
        self._emit = emit
        self._shell = shell
        self._workspace = workspace
        self._domain_env = dict(domain_env or {})
        self._sources = {
            ProcessCategory.SHELL: shell_source,
            ProcessCategory.DOMAIN: domain_source,
        }
        self._system_source = system_source
        self._default_timeout = default_timeout
        self._kill_grace = kill_grace
        self._classifier = classifier or classify_line
        self._registry: dict[str, ProcessRecord] = {}
        self._processes: dict[str, asyncio.subprocess.Process] = {}
        self._tasks: dict[str, asyncio.Task[ExecutionResult]] = {}
        self._termination: dict[str, str] = {}
        self._kill_timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def processes(self) -> list[ProcessRecord]:
        """Snapshot of the in-flight process records."""
        return list(self._registry.values())

    @property
    def in_flight_count(self) -> int:
        return len(self._registry)

    @property
    def workspace(self) -> str:
        return self._workspace

    def get(self, process_id: str) -> ProcessRecord | None:
        return self._registry.get(process_id)

    async def spawn(
        self,
        command: str,
        context: ExecutionContext | None = None,
        agent: AgentSpec | None = None,
    ) -> ProcessHandle:
        """Start a command and return a handle to its pending result.

        Never raises for OS-level spawn failures; those resolve the
        handle immediately with ``success=False``.

        Raises:
            ValueError: If the command is empty.
        """
        if not command or not command.strip():
            raise ValueError("command must be a non-empty string")
        context = context or ExecutionContext()

        record = ProcessRecord(
            process_id=self._new_id(),
            command=command,
            category=context.category,
            agent=agent,
        )
        self._registry[record.process_id] = record
        logger.info(
            "Spawning %s process %s: %s",
            record.category.value, record.process_id, command,
        )
        await self._notify(f"Executing: {command}")

        argv, cwd, env = self._compose(command, context)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            self._registry.pop(record.process_id, None)
            record.status = ProcessStatus.FAILED
            logger.error("Failed to start process %s: %s", record.process_id, e)
            await self._notify(f"Process error: {e}", EventLevel.ERROR)
            failed: asyncio.Future[ExecutionResult] = asyncio.get_running_loop().create_future()
            failed.set_result(
                ExecutionResult(
                    success=False,
                    error=str(e) or type(e).__name__,
                    process_id=record.process_id,
                )
            )
            return ProcessHandle(record, failed)

        record.pid = process.pid
        self._processes[record.process_id] = process
        timeout = context.timeout or self._default_timeout
        task = asyncio.create_task(
            self._supervise(record, process, timeout),
            name=f"flowdeck-process-{record.process_id}",
        )
        self._tasks[record.process_id] = task
        return ProcessHandle(record, task)

    async def run(
        self,
        command: str,
        context: ExecutionContext | None = None,
        agent: AgentSpec | None = None,
    ) -> ExecutionResult:
        """Spawn a command and wait for its result."""
        handle = await self.spawn(command, context, agent)
        return await handle.wait()

    def cancel(self, process_id: str) -> bool:
        """Terminate an in-flight process. Returns False for unknown ids."""
        if process_id not in self._processes:
            return False
        self._request_termination(process_id, CANCELLED)
        return True

    async def shutdown(self) -> None:
        """Cancel every in-flight process and wait for them to exit."""
        tasks = list(self._tasks.values())
        for process_id in list(self._processes):
            self._request_termination(process_id, CANCELLED)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Process manager stopped (%d processes cancelled)", len(tasks))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_id(self) -> str:
        while True:
            process_id = uuid.uuid4().hex[:12]
            if process_id not in self._registry:
                return process_id

    def _compose(
        self, command: str, context: ExecutionContext
    ) -> tuple[list[str], str, dict[str, str]]:
        cwd = context.cwd or self._workspace
        env = dict(os.environ)
        if context.category is ProcessCategory.DOMAIN:
            env.update(self._domain_env)
            script = f"cd {shlex.quote(cwd)} && {command}"
        else:
            script = command
        env.update(context.env)
        return [self._shell, "-c", script], cwd, env

    async def _supervise(
        self,
        record: ProcessRecord,
        process: asyncio.subprocess.Process,
        timeout: float | None,
    ) -> ExecutionResult:
        process_id = record.process_id
        timer = None
        if timeout is not None:
            timer = asyncio.get_running_loop().call_later(
                timeout, self._request_termination, process_id, TIMED_OUT
            )
        try:
            stdout, stderr = await asyncio.gather(
                self._pump(record, process.stdout, "stdout"),
                self._pump(record, process.stderr, "stderr"),
            )
            exit_code = await process.wait()
        finally:
            if timer is not None:
                timer.cancel()
            kill_timer = self._kill_timers.pop(process_id, None)
            if kill_timer is not None:
                kill_timer.cancel()
            self._registry.pop(process_id, None)
            self._processes.pop(process_id, None)
            self._tasks.pop(process_id, None)
            reason = self._termination.pop(process_id, None)

        success = exit_code == 0 and reason is None
        record.status = ProcessStatus.SUCCEEDED if success else ProcessStatus.FAILED

        if success:
            result = ExecutionResult(
                success=True,
                output=stdout or "Command completed",
                exit_code=exit_code,
                process_id=process_id,
            )
            await self._notify("Command completed successfully", EventLevel.SUCCESS)
        else:
            if reason == TIMED_OUT:
                error = f"Command timed out after {timeout:g}s"
            elif reason == CANCELLED:
                error = "Command cancelled"
            else:
                error = stderr or f"Command failed with code {exit_code}"
            result = ExecutionResult(
                success=False,
                output=stdout or None,
                error=error,
                exit_code=exit_code,
                process_id=process_id,
                timed_out=reason == TIMED_OUT,
                cancelled=reason == CANCELLED,
            )
            summary = error if reason else f"Command finished with code {exit_code}"
            await self._notify(summary, EventLevel.ERROR)

        logger.info(
            "Process %s exited (code=%s, success=%s)", process_id, exit_code, success
        )
        return result

    async def _pump(
        self,
        record: ProcessRecord,
        stream: asyncio.StreamReader | None,
        name: Stream,
    ) -> str:
        """Read a pipe to EOF, emitting each complete line as it arrives."""
        if stream is None:
            return ""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        collected: list[str] = []
        partial = ""
        while True:
            chunk = await stream.read(CHUNK_SIZE)
            final = not chunk
            text = decoder.decode(chunk, final=final)
            if text:
                collected.append(text)
                lines = (partial + text).split("\n")
                partial = lines.pop()
                for line in lines:
                    await self._emit_line(record, line, name)
            if final:
                if partial:
                    await self._emit_line(record, partial, name)
                return "".join(collected)

    async def _emit_line(self, record: ProcessRecord, line: str, name: Stream) -> None:
        text = line.strip()
        if not text:
            return
        level = self._classifier(text, name)
        await self._notify(text, level, source=self._sources[record.category])

    async def _notify(
        self,
        message: str,
        level: EventLevel = EventLevel.INFO,
        source: str | None = None,
    ) -> None:
        if self._emit is None:
            return
        await self._emit(
            CommandOutput(source=source or self._system_source, message=message, level=level)
        )

    def _request_termination(self, process_id: str, reason: str) -> None:
        """Send SIGTERM to the process group, escalating to SIGKILL."""
        process = self._processes.get(process_id)
        # The shell may exit before its children; the group still holds the pipes
        if process is None or process_id not in self._tasks:
            return
        self._termination.setdefault(process_id, reason)
        logger.warning("Terminating process %s (%s)", process_id, reason)
        self._signal_group(process, signal.SIGTERM)
        if process_id not in self._kill_timers:
            self._kill_timers[process_id] = asyncio.get_running_loop().call_later(
                self._kill_grace, self._signal_group, process, signal.SIGKILL
            )

    @staticmethod
    def _signal_group(process: asyncio.subprocess.Process, sig: int) -> None:
        try:
            os.killpg(process.pid, sig)
        except (ProcessLookupError, PermissionError):
            try:
                process.send_signal(sig)
            except ProcessLookupError:
                pass
