"""In-memory collaborators shared by the test suite."""

from pathlib import Path

import pytest


class FakeTransport:
    def __init__(self, responses=None):
        self.opened: list[tuple[str, int]] = []
        self.written: list[str] = []
        self.closed = 0
        self.responses = list(responses or [])
        self.fail_open: Exception | None = None
        self.fail_write: Exception | None = None
        self.fail_close: Exception | None = None

    async def open(self, path, baud_rate):
        if self.fail_open:
            raise self.fail_open
        self.opened.append((path, baud_rate))
        return f"conn:{path}"

    async def write(self, connection, line):
        if self.fail_write:
            raise self.fail_write
        self.written.append(line)

    async def read_line(self, connection, timeout):
        if self.responses:
            return self.responses.pop(0)
        return None

    async def close(self, connection):
        self.closed += 1
        if self.fail_close:
            raise self.fail_close


class FakeFileSystem:
    def __init__(self, directories=()):
        self.directories = {str(Path(d)) for d in directories}
        self.files: dict[str, str] = {}
        self.writes: list[str] = []

    def exists(self, path):
        key = str(Path(path))
        return key in self.files or key in self.directories

    def read_text(self, path):
        key = str(Path(path))
        if key not in self.files:
            raise FileNotFoundError(key)
        return self.files[key]

    def write_text(self, path, content):
        key = str(Path(path))
        self.files[key] = content
        self.writes.append(key)


async def _chunks(items):
    for item in items:
        yield item


class FakeHandle:
    def __init__(self, stdout=(), stderr=(), exit_code=0):
        self._stdout = list(stdout)
        self._stderr = list(stderr)
        self.exit_code = exit_code

    def stdout(self):
        return _chunks(self._stdout)

    def stderr(self):
        return _chunks(self._stderr)

    async def wait(self):
        return self.exit_code


class FakeProcessExecutor:
    def __init__(self):
        self.spawned: list[dict] = []
        self.results: list[FakeHandle] = []
        self.default = FakeHandle()

    def queue(self, stdout=(), stderr=(), exit_code=0):
        self.results.append(FakeHandle(stdout, stderr, exit_code))

    async def spawn(self, binary, args, *, cwd, shell=False):
        self.spawned.append({"binary": binary, "args": list(args), "cwd": cwd, "shell": shell})
        if self.results:
            return self.results.pop(0)
        return self.default

    @property
    def calls(self) -> list[list[str]]:
        return [s["args"] for s in self.spawned]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def fs():
    return FakeFileSystem()


@pytest.fixture
def executor():
    return FakeProcessExecutor()
