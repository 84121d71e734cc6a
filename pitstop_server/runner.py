"""Invocation of the PitStop Server CLI as an asyncio subprocess."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Awaitable, Sequence

from .exceptions import ProcessError
from .types import ExecutionResult

_LOGGER = logging.getLogger("pitstop_server")

MAX_BUFFER = 10 * 1024 * 1024
_CHUNK_SIZE = 64 * 1024


class OutputLimitExceeded(ProcessError):
    """Raised when the CLI writes more output than the capture buffer allows."""

    @property
    def default_message(self) -> str:
        return f"stdout/stderr maxBuffer of {MAX_BUFFER} bytes exceeded"


class _CaptureBudget:
    """Byte budget shared by stdout and stderr of one process."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.used = 0

    def consume(self, size: int) -> None:
        self.used += size
        if self.used > self.limit:
            raise OutputLimitExceeded(f"stdout/stderr maxBuffer of {self.limit} bytes exceeded")


def format_command(executable: os.PathLike[str] | str, args: Sequence[str]) -> str:
    """Render the command line the way it is reported in results and logs."""

    return " ".join([f'"{os.fspath(executable)}"', *args])


async def _read_stream(
    stream: asyncio.StreamReader | None,
    budget: _CaptureBudget,
    chunks: list[bytes],
) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            return
        chunks.append(chunk)
        budget.consume(len(chunk))


async def _read_both(*readers: Awaitable[None]) -> None:
    """Run the stream readers; the first failure cancels the others."""

    tasks = [asyncio.ensure_future(reader) for reader in readers]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        for task in tasks:
            task.cancel()
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
    for outcome in outcomes:
        if isinstance(outcome, Exception):
            raise outcome


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace").strip()


async def run_command(
    executable: os.PathLike[str] | str,
    args: Sequence[str],
    *,
    max_buffer: int = MAX_BUFFER,
) -> ExecutionResult:
    """Run *executable* with *args* and capture its output.

    Launch failures and non-zero exits are reported in the returned
    :class:`ExecutionResult`; nothing is raised for them.
    """

    command = format_command(executable, args)
    _LOGGER.debug("Executing command: %s", command)
    try:
        process = await asyncio.create_subprocess_exec(
            os.fspath(executable),
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        _LOGGER.warning("Could not launch %s: %s", command, exc)
        return ExecutionResult(command=command, exit_code=-1, stdout="", stderr=str(exc))

    budget = _CaptureBudget(max_buffer)
    stdout_chunks: list[bytes] = []
    stderr_chunks: list[bytes] = []
    try:
        await _read_both(
            _read_stream(process.stdout, budget, stdout_chunks),
            _read_stream(process.stderr, budget, stderr_chunks),
        )
        exit_code = await process.wait()
    except OutputLimitExceeded as exc:
        _kill(process)
        await process.wait()
        return ExecutionResult(
            command=command,
            exit_code=-1,
            stdout=_decode(stdout_chunks),
            stderr=exc.message,
        )
    except asyncio.CancelledError:
        _kill(process)
        raise

    stdout = _decode(stdout_chunks)
    stderr = _decode(stderr_chunks)
    _LOGGER.debug(
        "Command finished with exit code %s\nstdout: %s\nstderr: %s",
        exit_code,
        stdout,
        stderr,
    )
    if exit_code != 0 and not stderr:
        stderr = f"Command failed: {command}"
    return ExecutionResult(command=command, exit_code=exit_code, stdout=stdout, stderr=stderr)


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return
