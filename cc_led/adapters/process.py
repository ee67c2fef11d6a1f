"""Subprocess adapter for cc-led.

The toolchain service never talks to asyncio's subprocess API directly: it
spawns through a ProcessExecutor and consumes the handle's output as text
chunks, which keeps it testable with an in-memory executor.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import AsyncIterator, Protocol, Sequence

log = logging.getLogger(__name__)

_CHUNK_SIZE = 4096


class ProcessHandle(Protocol):
    def stdout(self) -> AsyncIterator[str]: ...

    def stderr(self) -> AsyncIterator[str]: ...

    async def wait(self) -> int: ...


class ProcessExecutor(Protocol):
    async def spawn(
        self,
        binary: str,
        args: Sequence[str],
        *,
        cwd: Path | str,
        shell: bool = False,
    ) -> ProcessHandle: ...


async def _read_chunks(stream: asyncio.StreamReader) -> AsyncIterator[str]:
    # Incremental decoding so a multi-byte character split across reads survives.
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(_CHUNK_SIZE)
        if not data:
            tail = decoder.decode(b"", final=True)
            if tail:
                yield tail
            return
        text = decoder.decode(data)
        if text:
            yield text


def shell_command_line(binary: str, args: Sequence[str]) -> str:
    """Quote a command for the platform shell (cmd.exe on Windows, sh elsewhere)."""
    argv = [binary, *args]
    if os.name == "nt":
        return subprocess.list2cmdline(argv)
    return shlex.join(argv)


class AsyncioProcessHandle:
    def __init__(self, process: asyncio.subprocess.Process):
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    def stdout(self) -> AsyncIterator[str]:
        return _read_chunks(self._process.stdout)

    def stderr(self) -> AsyncIterator[str]:
        return _read_chunks(self._process.stderr)

    async def wait(self) -> int:
        return await self._process.wait()


class AsyncioProcessExecutor:
    """ProcessExecutor built on asyncio subprocesses."""

    async def spawn(
        self,
        binary: str,
        args: Sequence[str],
        *,
        cwd: Path | str,
        shell: bool = False,
    ) -> AsyncioProcessHandle:
        if shell:
            command_line = shell_command_line(binary, args)
            log.debug("spawn (shell): %s [cwd=%s]", command_line, cwd)
            process = await asyncio.create_subprocess_shell(
                command_line,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        else:
            log.debug("spawn: %s %s [cwd=%s]", binary, args, cwd)
            process = await asyncio.create_subprocess_exec(
                binary,
                *args,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        return AsyncioProcessHandle(process)
