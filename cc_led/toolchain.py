"""arduino-cli orchestration for cc-led.

Every invocation is built the same way::

    arduino-cli --log --log-level <level> --config-file <cwd>/arduino-cli.yaml <subcommand...>

and runs through a shell with its working directory pinned to the directory
the service was created in. The config file is written once per directory and
left alone afterwards.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import AsyncIterator, Callable, Sequence

from cc_led.adapters import AsyncioProcessExecutor, FileSystem, LocalFileSystem, ProcessExecutor
from cc_led.boards import BoardDescriptor

log = logging.getLogger(__name__)

ARDUINO_CLI = "arduino-cli"
CONFIG_FILENAME = "arduino-cli.yaml"
DEFAULT_FQBN = "rp2040:rp2040:seeed_xiao_rp2040"
DEFAULT_LOG_LEVEL = "info"

DEFAULT_CONFIG = """\
directories:
  data: ./.arduino/data
  downloads: ./.arduino/data/downloads
  user: ./.arduino/data
board_manager:
  additional_urls:
    - https://github.com/earlephilhower/arduino-pico/releases/download/global/package_rp2040_index.json
    - https://files.seeedstudio.com/arduino/package_seeeduino_boards_index.json
"""

OutputCallback = Callable[[str], None]


class ToolchainError(Exception):
    """Base class for toolchain failures."""

    exit_code = 1

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "exit_code": self.exit_code}


class SketchNotFound(ToolchainError):
    """Raised when the sketch directory does not exist."""

    def __init__(self, sketch_dir: Path | str):
        super().__init__(f"Sketch directory '{sketch_dir}' not found")
        self.sketch_dir = Path(sketch_dir)


class ToolchainExecutionFailed(ToolchainError):
    """arduino-cli exited with a non-zero status."""

    def __init__(self, exit_code: int, stderr: str):
        super().__init__(f"Command failed with code {exit_code}: {stderr}")
        self.exit_code = exit_code
        self.stderr = stderr

    def to_dict(self) -> dict:
        return {"error": self.message, "exit_code": self.exit_code, "stderr": self.stderr}


async def _collect(chunks: AsyncIterator[str], echo: OutputCallback | None) -> str:
    parts: list[str] = []
    async for chunk in chunks:
        parts.append(chunk)
        if echo is not None:
            echo(chunk)
    return "".join(parts)


class ArduinoCli:
    """Runs arduino-cli for one working directory."""

    def __init__(
        self,
        fs: FileSystem | None = None,
        executor: ProcessExecutor | None = None,
        *,
        fqbn: str | None = None,
        working_dir: Path | str | None = None,
        sketch_root: Path | str | None = None,
        log_level: str = DEFAULT_LOG_LEVEL,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
    ):
        self.fs = fs if fs is not None else LocalFileSystem()
        self.executor = executor if executor is not None else AsyncioProcessExecutor()
        self.fqbn = fqbn
        self.working_dir = Path(working_dir) if working_dir is not None else Path.cwd()
        self.sketch_root = Path(sketch_root) if sketch_root is not None else self.working_dir
        self.log_level = log_level
        self.on_stdout = on_stdout
        self.on_stderr = on_stderr
        self._config_path = self.working_dir / CONFIG_FILENAME

    def resolve_config_path(self) -> Path:
        return self._config_path

    def ensure_config(self) -> Path:
        """Write the default arduino-cli.yaml unless one already exists."""
        path = self.resolve_config_path()
        if not self.fs.exists(path):
            log.debug("writing default config to %s", path)
            self.fs.write_text(path, DEFAULT_CONFIG)
        return path

    def build_args(self, sub_args: Sequence[str], log_level: str | None = None) -> list[str]:
        return [
            "--log",
            "--log-level", log_level or self.log_level,
            "--config-file", str(self.resolve_config_path()),
            *sub_args,
        ]

    async def execute(self, sub_args: Sequence[str], log_level: str | None = None) -> str:
        """Run arduino-cli and return its trimmed standard output.

        Raises ToolchainExecutionFailed with the exit code and the captured
        standard error when the process exits non-zero.
        """
        self.ensure_config()
        args = self.build_args(sub_args, log_level)
        log.debug("%s %s", ARDUINO_CLI, " ".join(args))
        try:
            handle = await self.executor.spawn(ARDUINO_CLI, args, cwd=self.working_dir, shell=True)
        except OSError as e:
            raise ToolchainError(f"Failed to execute {ARDUINO_CLI}: {e}") from e

        stdout, stderr = await asyncio.gather(
            _collect(handle.stdout(), self.on_stdout),
            _collect(handle.stderr(), self.on_stderr),
        )
        exit_code = await handle.wait()
        if exit_code != 0:
            log.debug("%s exited with %d", ARDUINO_CLI, exit_code)
            raise ToolchainExecutionFailed(exit_code, stderr)
        return stdout.strip()

    def resolve_sketch_dir(self, sketch_name: str, board: BoardDescriptor | None = None) -> Path:
        """Board sketches live under <sketch_root>/boards/<id>/; anything else is looked up in the working directory."""
        if board is not None and board.supports_sketch(sketch_name):
            return self.sketch_root / "boards" / board.id / board.sketch_path(sketch_name)
        return self.working_dir / sketch_name

    def _fqbn_for(self, board: BoardDescriptor | None) -> str:
        """A configured FQBN overrides the board's own, which overrides the default."""
        if self.fqbn:
            return self.fqbn
        return board.fqbn if board is not None else DEFAULT_FQBN

    def _existing_sketch_dir(self, sketch_name: str, board: BoardDescriptor | None) -> Path:
        sketch_dir = self.resolve_sketch_dir(sketch_name, board)
        if not self.fs.exists(sketch_dir):
            raise SketchNotFound(sketch_dir)
        return sketch_dir

    async def compile(
        self,
        sketch_name: str,
        board: BoardDescriptor | None = None,
        log_level: str | None = None,
    ) -> str:
        sketch_dir = self._existing_sketch_dir(sketch_name, board)
        fqbn = self._fqbn_for(board)
        log.info("Compiling sketch '%s' for board '%s'", sketch_name, fqbn)
        return await self.execute(["compile", "--fqbn", fqbn, str(sketch_dir)], log_level)

    async def upload(
        self,
        sketch_name: str,
        port: str,
        board: BoardDescriptor | None = None,
        log_level: str | None = None,
    ) -> str:
        sketch_dir = self._existing_sketch_dir(sketch_name, board)
        fqbn = self._fqbn_for(board)
        log.info("Uploading sketch '%s' to board '%s' on port '%s'", sketch_name, fqbn, port)
        return await self.execute(
            ["upload", "--port", port, "--fqbn", fqbn, str(sketch_dir)], log_level
        )

    deploy = upload

    async def install(
        self,
        board: BoardDescriptor | None = None,
        log_level: str | None = None,
    ) -> list[str]:
        """Install the board's core and libraries, or just refresh the indexes without a board."""
        outputs = [await self.execute(["core", "update-index"], log_level)]

        if board is None:
            outputs.append(await self.execute(["lib", "update-index"], log_level))
            return outputs

        if board.platform is not None:
            log.info("Installing %s boards core (%s)", board.name, board.platform.package)
            outputs.append(
                await self.execute(["core", "install", board.platform.package], log_level)
            )
        for library in board.libraries:
            log.info("Installing '%s' library", library.spec)
            outputs.append(await self.execute(["lib", "install", library.spec], log_level))
        return outputs

    async def version(self, log_level: str | None = None) -> str:
        return await self.execute(["version"], log_level)

    async def core_list(self, log_level: str | None = None) -> str:
        return await self.execute(["core", "list"], log_level)

    async def lib_list(self, log_level: str | None = None) -> str:
        return await self.execute(["lib", "list"], log_level)

    def doctor(self) -> dict:
        """Check if arduino-cli is installed. Returns {"ok": bool, "message": str}."""
        if shutil.which(ARDUINO_CLI):
            return {"ok": True, "message": "arduino-cli found"}
        return {
            "ok": False,
            "message": "arduino-cli not found. Install: https://arduino.github.io/arduino-cli/latest/installation/",
        }
