"""Board definitions for cc-led."""

from __future__ import annotations

from dataclasses import dataclass, field

from cc_led.protocol import ProtocolVariant


class BoardNotFoundError(Exception):
    """Raised when a board id is not found."""

    exit_code = 1

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "exit_code": self.exit_code}


class BoardNotSupportedError(BoardNotFoundError):
    """Raised for boards that are listed but not implemented yet."""


@dataclass(frozen=True)
class Platform:
    package: str
    version: str = ""


@dataclass(frozen=True)
class Library:
    name: str
    version: str = ""

    @property
    def spec(self) -> str:
        """Name in the form arduino-cli's ``lib install`` expects."""
        return f"{self.name}@{self.version}" if self.version else self.name


@dataclass(frozen=True)
class Sketch:
    name: str
    path: str
    description: str = ""


@dataclass
class BoardDescriptor:
    id: str
    name: str
    fqbn: str
    protocol: ProtocolVariant
    baud_rate: int = 9600
    platform: Platform | None = None
    libraries: list[Library] = field(default_factory=list)
    sketches: dict[str, Sketch] = field(default_factory=dict)
    status: str = "supported"

    def supports_sketch(self, name: str) -> bool:
        return name in self.sketches

    def sketch_path(self, name: str) -> str:
        """Sketch path relative to the board directory."""
        if not self.supports_sketch(name):
            raise BoardNotFoundError(f"Sketch '{name}' is not supported on {self.name}")
        return self.sketches[name].path

    def available_sketches(self) -> list[Sketch]:
        return list(self.sketches.values())


BOARDS: dict[str, BoardDescriptor] = {}

DEFAULT_BOARD = "xiao-rp2040"


def _register(board: BoardDescriptor) -> BoardDescriptor:
    BOARDS[board.id] = board
    return board


def get_board(board_id: str) -> BoardDescriptor:
    """Get a board by its id. Raises BoardNotFoundError if not found."""
    if board_id not in BOARDS:
        raise BoardNotFoundError(
            f"Board '{board_id}' not found. Available boards: {', '.join(BOARDS)}"
        )
    board = BOARDS[board_id]
    if board.status == "planned":
        raise BoardNotSupportedError(f"Board '{board_id}' support is planned but not yet implemented")
    return board


def list_boards() -> list[BoardDescriptor]:
    """Return all boards that can be used today."""
    return [b for b in BOARDS.values() if b.status != "planned"]


def get_board_by_fqbn(fqbn: str) -> BoardDescriptor | None:
    for board in list_boards():
        if board.fqbn == fqbn:
            return board
    return None


def _sketch(name: str, description: str) -> tuple[str, Sketch]:
    return name, Sketch(name=name, path=f"sketches/{name}", description=description)


_UNIVERSAL = _sketch("UniversalLedControl", "Serial command handler for the cc-led protocol")
_BLINK = _sketch("LEDBlink", "Blinks the onboard LED once per second")

# --- Seeed XIAO RP2040 ---

_register(BoardDescriptor(
    id="xiao-rp2040",
    name="Seeed XIAO RP2040",
    fqbn="rp2040:rp2040:seeed_xiao_rp2040",
    protocol=ProtocolVariant.RICH_COLOR,
    baud_rate=9600,
    platform=Platform("rp2040:rp2040", "3.6.0"),
    libraries=[Library("Adafruit NeoPixel", "1.15.1")],
    sketches=dict([
        _UNIVERSAL,
        _BLINK,
        _sketch("NeoPixel_SerialControl", "Legacy NeoPixel serial control sketch"),
    ]),
))

# --- Raspberry Pi Pico ---

_register(BoardDescriptor(
    id="raspberry-pi-pico",
    name="Raspberry Pi Pico",
    fqbn="rp2040:rp2040:rpipico",
    protocol=ProtocolVariant.DIGITAL_ON_OFF,
    baud_rate=9600,
    platform=Platform("rp2040:rp2040", "3.6.0"),
    sketches=dict([_UNIVERSAL, _BLINK]),
))

# --- Arduino Uno R4 ---

_register(BoardDescriptor(
    id="arduino-uno-r4",
    name="Arduino Uno R4 Minima",
    fqbn="arduino:renesas_uno:minima",
    protocol=ProtocolVariant.DIGITAL_ON_OFF,
    baud_rate=9600,
    platform=Platform("arduino:renesas_uno", "1.1.0"),
    sketches=dict([_UNIVERSAL]),
))

# --- Planned ---

_register(BoardDescriptor(
    id="esp32-c3",
    name="ESP32-C3",
    fqbn="esp32:esp32:esp32c3",
    protocol=ProtocolVariant.RICH_COLOR,
    baud_rate=115200,
    status="planned",
))
