"""Bounded, cancellable external process runner.

Every invocation owns one child process, one timer and its own pump tasks.
Four event sources race to finish an invocation: natural exit, the timeout
timer, the output cap check and the cancel token. The first one to act wins;
the state machine makes every later event a no-op.

On POSIX the child leads its own session, so a kill reaches every process it
forked. stdout and stderr are read from pipes this module owns rather than
asyncio's subprocess pipes, so reaping the child never waits on a descendant
that still holds a copy of them.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Mapping
from enum import Enum

from scanexec.models import (
    CompletionStatus,
    ExecutionPolicy,
    ExecutionRequest,
    ExecutionResult,
)

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024

_POSIX = os.name == "posix"
_LIMIT_STATUSES = (CompletionStatus.TIMED_OUT, CompletionStatus.OUTPUT_CAPPED)


class _State(Enum):
    RUNNING = "running"
    TERMINATING = "terminating"
    DONE = "done"


class _Invocation:
    def __init__(
        self,
        proc: asyncio.subprocess.Process,
        policy: ExecutionPolicy,
        label: str,
        stdout_fd: int,
        stderr_fd: int,
    ) -> None:
        self._proc = proc
        self._policy = policy
        self._label = label
        self._state = _State.RUNNING
        self._outcome: asyncio.Future[ExecutionResult] = (
            asyncio.get_running_loop().create_future()
        )
        self._stdout_fd = stdout_fd
        self._stderr_fd = stderr_fd
        self._unconnected_fds = [stdout_fd, stderr_fd]
        self._transports: list[asyncio.ReadTransport] = []
        self._stdout = bytearray()
        self._stderr = bytearray()
        self._stdout_bytes = 0
        self._stderr_bytes = 0

    async def run(self, stdin_data: str | None) -> ExecutionResult:
        loop = asyncio.get_running_loop()
        cancel = self._policy.cancel
        timer: asyncio.TimerHandle | None = None
        tasks: list[asyncio.Task[None]] = []

        try:
            stdout = await self._connect(self._stdout_fd)
            stderr = await self._connect(self._stderr_fd)

            timer = loop.call_later(self._policy.timeout_seconds, self._on_timeout)
            pumps = [
                asyncio.create_task(self._pump(stdout, is_stderr=False)),
                asyncio.create_task(self._pump(stderr, is_stderr=True)),
            ]
            watcher = asyncio.create_task(self._watch_exit(pumps))
            watcher.add_done_callback(self._on_watcher_done)
            tasks = [*pumps, watcher]
            if stdin_data is not None:
                tasks.append(asyncio.create_task(self._feed_stdin(stdin_data)))
            if cancel is not None:
                # Runs immediately if the token fired while the process was starting.
                cancel.add_callback(self._on_cancel)

            result = await self._outcome
        finally:
            if timer is not None:
                timer.cancel()
            if cancel is not None:
                cancel.remove_callback(self._on_cancel)
            if self._state is _State.RUNNING:
                # The awaiting task itself was cancelled.
                self._state = _State.TERMINATING
            if self._state is _State.TERMINATING:
                self._kill()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._close_pipes()
            await self._proc.wait()
            self._state = _State.DONE

        if cancel is not None and cancel.cancelled and result.status in _LIMIT_STATUSES:
            # Cancellation outranks a timeout or cap, even one that fired first
            # in the same tick or while the process was being reaped.
            logger.debug("%s: %s superseded by cancellation", self._label, result.status)
            result = ExecutionResult(status=CompletionStatus.CANCELLED, error="Execution cancelled")
        return result

    async def _connect(self, fd: int) -> asyncio.StreamReader:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        pipe = os.fdopen(fd, "rb", buffering=0)
        self._unconnected_fds.remove(fd)
        try:
            transport, _ = await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(reader), pipe
            )
        except BaseException:
            pipe.close()
            raise
        self._transports.append(transport)
        return reader

    def _close_pipes(self) -> None:
        for transport in self._transports:
            transport.close()
        for fd in self._unconnected_fds:
            os.close(fd)
        self._unconnected_fds.clear()
        if self._proc.stdin is not None:
            # Drop unsent input; a stray reader must not hold up the reap.
            self._proc.stdin.transport.abort()

    async def _pump(self, stream: asyncio.StreamReader, *, is_stderr: bool) -> None:
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                return
            if self._state is not _State.RUNNING:
                continue
            if is_stderr:
                self._stderr_bytes += len(chunk)
            else:
                self._stdout_bytes += len(chunk)
            if self._stdout_bytes + self._stderr_bytes > self._policy.max_output_bytes:
                logger.warning(
                    "%s: output exceeded %d bytes, killing pid %s",
                    self._label,
                    self._policy.max_output_bytes,
                    self._proc.pid,
                )
                self._terminate(
                    CompletionStatus.OUTPUT_CAPPED,
                    f"Output exceeded {self._policy.max_output_bytes} bytes limit",
                    self._policy.max_output_bytes,
                )
                continue
            (self._stderr if is_stderr else self._stdout).extend(chunk)

    async def _feed_stdin(self, data: str) -> None:
        stdin = self._proc.stdin
        if stdin is None:
            return
        try:
            stdin.write(data.encode())
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # The tool exited or closed stdin without reading all of it.
            logger.debug("%s: stdin closed early", self._label)
        finally:
            stdin.close()

    async def _watch_exit(self, pumps: list[asyncio.Task[None]]) -> None:
        await asyncio.gather(*pumps)
        returncode = await self._proc.wait()
        self._complete(returncode)

    def _on_watcher_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        if self._state is _State.RUNNING and not self._outcome.done():
            self._state = _State.TERMINATING
            self._outcome.set_exception(task.exception())

    def _on_timeout(self) -> None:
        if self._state is not _State.RUNNING:
            return
        logger.warning(
            "%s: timed out after %gs, killing pid %s",
            self._label,
            self._policy.timeout_seconds,
            self._proc.pid,
        )
        self._terminate(
            CompletionStatus.TIMED_OUT,
            f"Process timed out after {self._policy.timeout_seconds:g}s",
            self._policy.timeout_seconds,
        )

    def _on_cancel(self) -> None:
        if self._state is not _State.RUNNING:
            return
        logger.debug("%s: cancelled, killing pid %s", self._label, self._proc.pid)
        self._terminate(CompletionStatus.CANCELLED, "Execution cancelled")

    def _terminate(
        self, status: CompletionStatus, message: str, limit: float | None = None
    ) -> None:
        if self._state is not _State.RUNNING:
            return
        self._state = _State.TERMINATING
        self._kill()
        self._stdout.clear()
        self._stderr.clear()
        self._outcome.set_result(
            ExecutionResult(status=status, error=message, limit=limit)
        )

    def _complete(self, returncode: int | None) -> None:
        if self._state is not _State.RUNNING:
            return
        self._state = _State.DONE
        signum = None
        exit_code = returncode
        if returncode is None or returncode < 0:
            # Killed by a signal: no numeric exit code, report a failure.
            signum = -returncode if returncode is not None else None
            exit_code = 1
        logger.debug("%s: exited with code %s", self._label, exit_code)
        self._outcome.set_result(
            ExecutionResult(
                status=CompletionStatus.EXITED,
                stdout=self._stdout.decode(errors="replace"),
                stderr=self._stderr.decode(errors="replace"),
                exit_code=exit_code,
                signal=signum,
            )
        )

    def _kill(self) -> None:
        if _POSIX:
            try:
                os.killpg(self._proc.pid, signal.SIGKILL)
            except (ProcessLookupError, PermissionError):
                # Group already gone, or the child moved itself to a new one.
                pass
        if self._proc.returncode is None:
            try:
                self._proc.kill()
            except ProcessLookupError:
                pass


async def run_process(request: ExecutionRequest) -> ExecutionResult:
    """Run an external command and return its single terminal outcome.

    Start failure, timeout, output cap and cancellation are reported through
    ``ExecutionResult.status``; a non-zero exit code is a normal outcome.
    """
    policy = request.effective_policy()
    label = os.path.basename(request.executable) or request.executable

    if policy.cancel is not None and policy.cancel.cancelled:
        logger.debug("%s: cancelled before start", label)
        return ExecutionResult(
            status=CompletionStatus.CANCELLED, error="Execution cancelled"
        )

    stdin_data = request.effective_stdin()
    stdout_r, stdout_w = os.pipe()
    stderr_r, stderr_w = os.pipe()
    logger.debug("%s: spawning %s %s", label, request.executable, request.args)
    try:
        proc = await asyncio.create_subprocess_exec(
            request.executable,
            *request.args,
            stdin=asyncio.subprocess.PIPE if stdin_data is not None else asyncio.subprocess.DEVNULL,
            stdout=stdout_w,
            stderr=stderr_w,
            cwd=request.cwd,
            env=dict(request.env) if request.env is not None else None,
            start_new_session=_POSIX,
        )
    except OSError as exc:
        os.close(stdout_r)
        os.close(stderr_r)
        logger.warning("%s: failed to start: %s", label, exc)
        return ExecutionResult(
            status=CompletionStatus.FAILED_TO_START,
            error=f"Failed to start process: {exc.strerror or exc}",
        )
    finally:
        # The child holds its own copies of the write ends.
        os.close(stdout_w)
        os.close(stderr_w)

    return await _Invocation(proc, policy, label, stdout_r, stderr_r).run(stdin_data)


async def secure_spawn(
    executable: str,
    args: list[str] | None = None,
    *,
    policy: ExecutionPolicy | None = None,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    stdin_data: str | None = None,
) -> ExecutionResult:
    """Run a command and raise unless it exited on its own.

    Returns the result (stdout, stderr, exit code) on natural exit, whatever
    the exit code. Raises StartFailure, ExecutionTimeout, OutputCapExceeded
    or ExecutionCancelled otherwise.
    """
    result = await run_process(
        ExecutionRequest(
            executable=executable,
            args=args or [],
            cwd=cwd,
            env=env,
            stdin_data=stdin_data,
            policy=policy,
        )
    )
    result.raise_for_status()
    return result
