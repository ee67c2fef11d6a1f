"""Device command protocol for cc-led.

Turns logical LED operations into the line protocol spoken by the
UniversalLedControl firmware. Two firmware variants exist: boards with an
addressable RGB strip understand the full command set, boards with a plain
digital LED only understand ON, OFF and BLINK.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

COLORS: dict[str, tuple[int, int, int]] = {
    "red": (255, 0, 0),
    "green": (0, 255, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "purple": (255, 0, 255),
    "cyan": (0, 255, 255),
    "white": (255, 255, 255),
}

DEFAULT_BLINK_INTERVAL = 500
DEFAULT_RAINBOW_INTERVAL = 50
DEFAULT_BLINK_COLOR = "white"

_RGB_PATTERN = re.compile(r"([0-9]{1,3}),([0-9]{1,3}),([0-9]{1,3})")
_INTEGER_PATTERN = re.compile(r"[-+]?[0-9]+")


class ProtocolError(Exception):
    """Base class for encoder errors."""

    exit_code = 1

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "exit_code": self.exit_code}


class InvalidColor(ProtocolError):
    """Raised when a color is neither a known name nor a valid R,G,B triple."""


class InvalidOperation(ProtocolError):
    """Raised when no operation (or an unknown one) was requested."""


class InvalidInterval(InvalidOperation):
    """Raised when an interval cannot be written as a plain decimal integer."""


class ProtocolVariant(Enum):
    RICH_COLOR = "rich_color"
    DIGITAL_ON_OFF = "digital_on_off"

    @classmethod
    def from_label(cls, label: str) -> "ProtocolVariant":
        """Map a board file label (``WS2812``, ``Digital``, or a value) to a variant."""
        normalized = label.strip().lower()
        if normalized in ("ws2812", "neopixel", cls.RICH_COLOR.value):
            return cls.RICH_COLOR
        if normalized in ("digital", cls.DIGITAL_ON_OFF.value):
            return cls.DIGITAL_ON_OFF
        raise ValueError(f"Unknown LED protocol: {label}")


class Operation(Enum):
    ON = "on"
    OFF = "off"
    COLOR = "color"
    BLINK = "blink"
    BLINK2 = "blink2"
    RAINBOW = "rainbow"


class RGB(NamedTuple):
    r: int
    g: int
    b: int

    def __str__(self) -> str:
        return f"{self.r},{self.g},{self.b}"


@dataclass(frozen=True)
class Command:
    """One wire command: a verb and its ordered parameters."""
    verb: str
    params: tuple[str, ...] = ()

    @property
    def line(self) -> str:
        return ",".join((self.verb, *self.params))

    def to_wire(self) -> str:
        return self.line + "\n"

    def __str__(self) -> str:
        return self.line


@dataclass(frozen=True)
class Encoding:
    command: Command
    advisory: str | None = None


@dataclass(frozen=True)
class DeviceResponse:
    """A firmware reply such as ``ACCEPTED,BLINK1,255,0,0,interval=500``."""
    accepted: bool
    command: str
    detail: str
    raw: str

    @classmethod
    def parse(cls, line: str) -> "DeviceResponse | None":
        """Parse a response line. Returns None for anything else (boot noise, echoes)."""
        text = line.strip()
        if text.startswith("ACCEPTED,"):
            accepted = True
            body = text[len("ACCEPTED,"):]
        elif text.startswith("REJECT,"):
            accepted = False
            body = text[len("REJECT,"):]
        else:
            return None

        if accepted:
            # The firmware echoes the whole command, so nothing here is a reason.
            return cls(accepted=True, command=body, detail="", raw=text)
        # REJECT,<command>,<reason>; the command itself may contain commas.
        command, _, reason = body.rpartition(",")
        return cls(accepted=False, command=command, detail=reason, raw=text)


def parse_color(text: str) -> RGB:
    """Resolve a color name or an ``R,G,B`` string to an RGB triple.

    Names are matched case-insensitively. Triples must be three decimal
    integers in [0, 255] separated by commas, with no whitespace.
    """
    if not isinstance(text, str):
        raise InvalidColor(f"Invalid color: {text!r}")

    named = COLORS.get(text.lower())
    if named is not None:
        return RGB(*named)

    match = _RGB_PATTERN.fullmatch(text)
    if match:
        values = [int(v) for v in match.groups()]
        if all(0 <= v <= 255 for v in values):
            return RGB(*values)
        raise InvalidColor(f"Invalid color: {text}. RGB values must be between 0 and 255")

    raise InvalidColor(
        f"Invalid color: {text}. Use a color name ({', '.join(COLORS)}) or RGB format (255,0,0)"
    )


def _format_interval(interval: int | str | None, default: int) -> str:
    if interval is None:
        return str(default)
    if isinstance(interval, bool):
        raise InvalidInterval(f"Invalid interval: {interval!r}")
    if isinstance(interval, int):
        return str(interval)
    if isinstance(interval, str) and _INTEGER_PATTERN.fullmatch(interval):
        return str(int(interval))
    raise InvalidInterval(f"Invalid interval: {interval!r}. Use a whole number of milliseconds")


def _encode_rich(op: Operation, color: str | None, color2: str | None, interval) -> Encoding:
    if op is Operation.ON:
        return Encoding(Command("ON"))
    if op is Operation.OFF:
        return Encoding(Command("OFF"))
    if op is Operation.COLOR:
        if color is None:
            raise InvalidColor("Invalid color: a color is required")
        return Encoding(Command("COLOR", tuple(str(v) for v in parse_color(color))))
    if op is Operation.BLINK:
        rgb = parse_color(color if color is not None else DEFAULT_BLINK_COLOR)
        params = (*(str(v) for v in rgb), _format_interval(interval, DEFAULT_BLINK_INTERVAL))
        return Encoding(Command("BLINK1", params))
    if op is Operation.BLINK2:
        rgb1 = parse_color(color if color is not None else DEFAULT_BLINK_COLOR)
        if color2 is None:
            raise InvalidColor("Invalid color: two-color blink needs a second color")
        rgb2 = parse_color(color2)
        params = (
            *(str(v) for v in rgb1),
            *(str(v) for v in rgb2),
            _format_interval(interval, DEFAULT_BLINK_INTERVAL),
        )
        return Encoding(Command("BLINK2", params))
    if op is Operation.RAINBOW:
        return Encoding(Command("RAINBOW", (_format_interval(interval, DEFAULT_RAINBOW_INTERVAL),)))
    raise InvalidOperation(f"Unsupported operation: {op}")


def _ignores_color(color: str | None) -> bool:
    """True when a digital LED would drop the requested color (anything but white).

    Raises InvalidColor for a malformed color.
    """
    return color is not None and parse_color(color) != RGB(*COLORS[DEFAULT_BLINK_COLOR])


def _encode_digital(op: Operation, color: str | None, color2: str | None, interval) -> Encoding:
    if op is Operation.ON:
        return Encoding(Command("ON"))
    if op is Operation.OFF:
        return Encoding(Command("OFF"))
    if op is Operation.COLOR:
        if color is None:
            raise InvalidColor("Invalid color: a color is required")
        advisory = None
        if _ignores_color(color):
            advisory = f"Note: Digital LED does not support colors. Color '{color}' ignored, turning LED on."
        return Encoding(Command("ON"), advisory)
    if op is Operation.BLINK:
        _format_interval(interval, DEFAULT_BLINK_INTERVAL)
        advisory = None
        if _ignores_color(color):
            advisory = f"Note: Digital LED does not support colors. Color '{color}' ignored, blinking LED."
        return Encoding(Command("BLINK"), advisory)
    if op is Operation.BLINK2:
        if color is not None:
            parse_color(color)
        if color2 is None:
            raise InvalidColor("Invalid color: two-color blink needs a second color")
        parse_color(color2)
        _format_interval(interval, DEFAULT_BLINK_INTERVAL)
        return Encoding(
            Command("BLINK"),
            f"Note: Digital LED does not support multi-color blinking. "
            f"Colors '{color or DEFAULT_BLINK_COLOR}' and '{color2}' ignored, using single-color blink.",
        )
    if op is Operation.RAINBOW:
        _format_interval(interval, DEFAULT_RAINBOW_INTERVAL)
        return Encoding(
            Command("BLINK"),
            "Note: Digital LED does not support rainbow effect. Using simple blink instead.",
        )
    raise InvalidOperation(f"Unsupported operation: {op}")


_ENCODERS = {
    ProtocolVariant.RICH_COLOR: _encode_rich,
    ProtocolVariant.DIGITAL_ON_OFF: _encode_digital,
}


def encode(
    op: Operation | str | None,
    variant: ProtocolVariant,
    *,
    color: str | None = None,
    color2: str | None = None,
    interval: int | str | None = None,
) -> Encoding:
    """Encode one LED operation for the given firmware variant.

    Returns the single wire command and, when the variant had to drop part of
    the request, a human-readable advisory.
    """
    if op is None:
        raise InvalidOperation("No action specified. Use on, off, color, blink or rainbow")
    if isinstance(op, str):
        try:
            op = Operation(op.lower())
        except ValueError:
            raise InvalidOperation(f"Unknown operation: {op}") from None

    return _ENCODERS[variant](op, color, color2, interval)
