"""Filesystem and process adapters used by the toolchain service."""

from cc_led.adapters.filesystem import FileSystem, LocalFileSystem
from cc_led.adapters.process import AsyncioProcessExecutor, ProcessExecutor, ProcessHandle

__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "ProcessExecutor",
    "ProcessHandle",
    "AsyncioProcessExecutor",
]
