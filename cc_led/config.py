"""Project configuration for cc-led.

Settings come from three places. Resolution order for every value:
explicit argument > environment variable > cc-led.toml > built-in default.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from cc_led.boards import DEFAULT_BOARD, get_board

CONFIG_FILENAME = "cc-led.toml"
DEFAULT_BAUD_RATE = 9600
DEFAULT_LOG_LEVEL = "info"
LOG_LEVELS = ("trace", "debug", "info", "warn", "error")

ENV_PORT = "SERIAL_PORT"
ENV_BAUD_RATE = "SERIAL_BAUD_RATE"
ENV_BOARD = "CC_LED_BOARD"
ENV_LOG_LEVEL = "CC_LED_LOG_LEVEL"


@dataclass
class SerialConfig:
    port: str | None = None
    baud_rate: int | None = None


@dataclass
class ToolchainConfig:
    log_level: str | None = None
    fqbn: str | None = None


@dataclass
class ProjectConfig:
    serial: SerialConfig = field(default_factory=SerialConfig)
    board: str | None = None
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)


@dataclass(frozen=True)
class Settings:
    """Fully resolved settings, passed explicitly to the controller and toolchain."""
    port: str | None
    baud_rate: int
    board_id: str
    log_level: str
    fqbn: str | None = None


def load_project_config(project_dir: Path | str) -> ProjectConfig:
    """Parse cc-led.toml and return a typed ProjectConfig."""
    project_dir = Path(project_dir)
    toml_path = project_dir / CONFIG_FILENAME
    if not toml_path.exists():
        raise FileNotFoundError(f"{CONFIG_FILENAME} not found in {project_dir}")

    with open(toml_path, "rb") as f:
        data = tomllib.load(f)

    serial_data = data.get("serial", {})
    toolchain_data = data.get("toolchain", {})

    return ProjectConfig(
        serial=SerialConfig(
            port=serial_data.get("port"),
            baud_rate=serial_data.get("baud_rate"),
        ),
        board=data.get("board", {}).get("id"),
        toolchain=ToolchainConfig(
            log_level=toolchain_data.get("log_level"),
            fqbn=toolchain_data.get("fqbn"),
        ),
    )


def first_set(*candidates):
    """Return the first candidate that is not None (the precedence list)."""
    for value in candidates:
        if value is not None:
            return value
    return None


def _env_int(environ: Mapping[str, str], key: str) -> int | None:
    raw = environ.get(key)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got: {raw}") from None


def _env_str(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(key)
    return value or None


def resolve_settings(
    *,
    port: str | None = None,
    baud_rate: int | None = None,
    board_id: str | None = None,
    log_level: str | None = None,
    project_dir: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve every setting once, following the documented precedence.

    The baud rate falls back to the selected board's baud rate before the
    global default, so a board file can pin its firmware speed.
    """
    environ = os.environ if environ is None else environ
    project_dir = Path.cwd() if project_dir is None else Path(project_dir)

    try:
        project = load_project_config(project_dir)
    except FileNotFoundError:
        project = ProjectConfig()

    resolved_board = first_set(board_id, _env_str(environ, ENV_BOARD), project.board, DEFAULT_BOARD)
    board = get_board(resolved_board)

    resolved_level = first_set(
        log_level,
        _env_str(environ, ENV_LOG_LEVEL),
        project.toolchain.log_level,
        DEFAULT_LOG_LEVEL,
    )
    if resolved_level not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {resolved_level}. Use one of: {', '.join(LOG_LEVELS)}")

    return Settings(
        port=first_set(port, _env_str(environ, ENV_PORT), project.serial.port),
        baud_rate=first_set(
            baud_rate,
            _env_int(environ, ENV_BAUD_RATE),
            project.serial.baud_rate,
            board.baud_rate,
            DEFAULT_BAUD_RATE,
        ),
        board_id=resolved_board,
        log_level=resolved_level,
        fqbn=project.toolchain.fqbn,
    )
