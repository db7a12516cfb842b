"""
Process adapter — start binaries and capture their output.

The single place where child processes are created. ``spawn`` runs to
completion; ``start`` returns a ``RunHandle`` for a process that is
already running and may be awaited or ignored by the caller.

A non-zero exit raises ``SpawnError`` carrying the captured output. A
binary that cannot be started surfaces as ``SpawnStartError`` from
``RunHandle.wait()``, never from ``start`` itself.
"""

from __future__ import annotations

import errno
import logging
import os
import subprocess
import threading
import time
from collections.abc import Mapping, Sequence

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class SpawnResult(BaseModel):
    """Captured outcome of a finished process."""

    command: list[str]
    code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def exit_code(self) -> int:
        return self.code


class SpawnError(Exception):
    """A spawned process failed (non-zero exit or timeout)."""

    def __init__(
        self,
        command: Sequence[str],
        code: int | None,
        stdout: str = "",
        stderr: str = "",
        message: str = "",
    ) -> None:
        self.command = list(command)
        self.code = code
        self.stdout = stdout
        self.stderr = stderr
        tail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        self.message = message or f"Command failed (exit {code}): {' '.join(self.command)}"
        if tail and not message:
            self.message += f"\n{tail}"
        super().__init__(self.message)

    @property
    def exit_code(self) -> int | None:
        return self.code


class SpawnTimeoutError(SpawnError):
    """The process did not finish within its timeout and was killed."""

    def __init__(self, command: Sequence[str], timeout: float, stdout: str = "", stderr: str = "") -> None:
        self.timeout = timeout
        super().__init__(
            command,
            None,
            stdout,
            stderr,
            message=f"Command timed out ({timeout}s): {' '.join(command)}",
        )


def _build_env(env: Mapping[str, str] | None) -> dict[str, str]:
    merged = os.environ.copy()
    if env:
        merged.update({key: str(value) for key, value in env.items()})
    return merged


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _command_line(command: list[str], shell: bool) -> str | list[str]:
    return subprocess.list2cmdline(command) if shell else command


def spawn(
    command: str,
    args: Sequence[str] | None = None,
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    shell: bool = False,
) -> SpawnResult:
    """Run ``command`` with ``args`` to completion and capture its output.

    Args:
        command: Executable path.
        args: Arguments (None is treated as no arguments).
        cwd: Working directory.
        env: Variables layered over the current environment.
        timeout: Seconds before the process is killed.
        shell: Start through the command interpreter (Windows scripts).

    Raises:
        SpawnError: Non-zero exit.
        SpawnTimeoutError: Timeout expired.
        FileNotFoundError: The executable does not exist.
    """
    cmd = [command, *(args or [])]
    logger.debug("Spawning: %s (cwd=%s)", cmd, cwd)
    start = time.monotonic()
    try:
        result = subprocess.run(
            _command_line(cmd, shell),
            shell=shell,
            cwd=cwd,
            env=_build_env(env),
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise SpawnTimeoutError(cmd, timeout or 0, _as_text(e.stdout), _as_text(e.stderr)) from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    if result.returncode != 0:
        logger.debug("Command failed (exit %d) after %dms: %s", result.returncode, elapsed_ms, cmd)
        raise SpawnError(cmd, result.returncode, result.stdout, result.stderr)

    return SpawnResult(
        command=cmd,
        code=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr,
        duration_ms=elapsed_ms,
    )


class SpawnStartError(SpawnError):
    """The process could not be started (missing file or not executable)."""

    def __init__(self, command: Sequence[str], error: OSError) -> None:
        self.errno = error.errno
        code = 127 if error.errno == errno.ENOENT else 126
        super().__init__(
            command,
            code,
            message=f"Cannot start {command[0]}: {error.strerror or error}",
        )


class RunHandle:
    """A started child process with captured output.

    Both pipes are drained by a background thread from the moment the
    process starts, so a handle that is never awaited cannot block the
    child on a full pipe. ``wait()`` collects the output once; later
    calls return the same result (or raise the same error).
    """

    def __init__(
        self,
        process: subprocess.Popen | None,
        command: list[str],
        start_error: SpawnStartError | None = None,
    ) -> None:
        self._process = process
        self._started = time.monotonic()
        self._result: SpawnResult | None = None
        self._error: SpawnError | None = start_error
        self._output: tuple[str, str] = ("", "")
        self._drainer: threading.Thread | None = None
        self.command = command

        if process is not None:
            self._drainer = threading.Thread(target=self._drain, name=f"drain-{process.pid}", daemon=True)
            self._drainer.start()

    def _drain(self) -> None:
        try:
            stdout, stderr = self._process.communicate()
        except (OSError, ValueError) as e:
            logger.debug("Lost output of %s: %s", self.command, e)
            self._process.wait()
            return
        self._output = (stdout or "", stderr or "")

    @property
    def pid(self) -> int | None:
        """Process id, or None when the process never started."""
        return self._process.pid if self._process is not None else None

    def poll(self) -> int | None:
        """Exit code if the process has finished, else None."""
        if self._process is None:
            return self._error.code if self._error else None
        return self._process.poll()

    def kill(self) -> None:
        if self._process is not None and self._process.poll() is None:
            self._process.kill()

    def wait(self, timeout: float | None = None) -> SpawnResult:
        """Wait for the process to exit and return its captured output.

        Raises:
            SpawnStartError: The process could not be started.
            SpawnError: Non-zero exit.
            SpawnTimeoutError: Timeout expired (the process is killed).
        """
        if self._result is not None:
            return self._result
        if self._error is not None:
            raise self._error

        self._drainer.join(timeout)
        if self._drainer.is_alive():
            self.kill()
            self._drainer.join()
            stdout, stderr = self._output
            self._error = SpawnTimeoutError(self.command, timeout or 0, stdout, stderr)
            raise self._error

        stdout, stderr = self._output
        code = self._process.returncode
        if code != 0:
            self._error = SpawnError(self.command, code, stdout, stderr)
            raise self._error

        self._result = SpawnResult(
            command=self.command,
            code=code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=int((time.monotonic() - self._started) * 1000),
        )
        return self._result

    def __repr__(self) -> str:
        return f"RunHandle(pid={self.pid}, command={self.command!r})"


def start(
    command: str,
    args: Sequence[str] | None = None,
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    shell: bool = False,
) -> RunHandle:
    """Start ``command`` in the background and return its handle.

    Never raises for a binary that cannot be started: the returned
    handle's ``wait()`` raises ``SpawnStartError`` instead.
    """
    cmd = [command, *(args or [])]
    logger.debug("Starting: %s (cwd=%s)", cmd, cwd)
    try:
        process = subprocess.Popen(
            _command_line(cmd, shell),
            shell=shell,
            cwd=cwd,
            env=_build_env(env),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        logger.debug("Cannot start %s: %s", cmd, e)
        return RunHandle(None, cmd, SpawnStartError(cmd, e))
    return RunHandle(process, cmd)
