"""LED controller: connection lifecycle and command dispatch."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from cc_led.protocol import (
    Command,
    DeviceResponse,
    Encoding,
    InvalidOperation,
    Operation,
    ProtocolVariant,
    encode,
)

log = logging.getLogger(__name__)

DEFAULT_RESPONSE_TIMEOUT = 2.0


class ControllerError(Exception):
    exit_code = 1

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "exit_code": self.exit_code}


class NotConnected(ControllerError):
    """Raised when a command is sent before connect()."""


class TransportWriteFailed(ControllerError):
    """Raised when the transport could not deliver a command line."""


class Transport(Protocol):
    async def open(self, path: str, baud_rate: int) -> Any: ...

    async def write(self, connection: Any, line: str) -> None: ...

    async def read_line(self, connection: Any, timeout: float) -> str | None: ...

    async def close(self, connection: Any) -> None: ...


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class CommandResult:
    """What happened to one dispatched command."""
    line: str
    advisory: str | None = None
    response: DeviceResponse | None = None


class LedController:
    """Drives one LED device over an exclusively owned transport connection.

    Use it as an async context manager so the connection is always released::

        async with LedController(transport, "/dev/ttyACM0") as led:
            await led.set_color("red")
    """

    def __init__(
        self,
        transport: Transport,
        port: str,
        *,
        baud_rate: int = 9600,
        protocol: ProtocolVariant = ProtocolVariant.RICH_COLOR,
        response_timeout: float | None = DEFAULT_RESPONSE_TIMEOUT,
    ):
        self.transport = transport
        self.port = port
        self.baud_rate = baud_rate
        self.protocol = protocol
        self.response_timeout = response_timeout
        self.state = ConnectionState.DISCONNECTED
        self._connection: Any = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    async def connect(self) -> None:
        if self.state is ConnectionState.CONNECTED:
            return
        self.state = ConnectionState.CONNECTING
        try:
            self._connection = await self.transport.open(self.port, self.baud_rate)
        except BaseException:
            self._connection = None
            self.state = ConnectionState.DISCONNECTED
            raise
        self.state = ConnectionState.CONNECTED
        log.debug("connected to %s", self.port)

    async def disconnect(self) -> None:
        """Close the connection. Safe to call in any state, any number of times."""
        connection = self._connection
        self._connection = None
        self.state = ConnectionState.DISCONNECTED
        if connection is not None:
            await self.transport.close(connection)
            log.debug("disconnected from %s", self.port)

    async def __aenter__(self) -> "LedController":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.disconnect()
            return
        try:
            await self.disconnect()
        except Exception:
            log.warning("Failed to close %s after an error", self.port, exc_info=True)

    async def send_command(self, command: Command) -> DeviceResponse | None:
        """Write one command and, if configured, wait for the device's reply."""
        self._require_connected()

        try:
            await self.transport.write(self._connection, command.to_wire())
        except Exception as e:
            raise TransportWriteFailed(f"Failed to send command: {getattr(e, 'message', e)}") from e
        log.debug("Sent command: %s", command.line)

        if self.response_timeout is None:
            return None
        return await self._await_response()

    async def _await_response(self) -> DeviceResponse | None:
        """Read lines until an ACCEPTED/REJECT reply arrives or the response timeout runs out."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.response_timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            raw = await self.transport.read_line(self._connection, remaining)
            if raw is None:
                break
            response = DeviceResponse.parse(raw)
            if response is not None:
                log.debug("Device response: %s", response.raw)
                return response
            log.debug("Ignoring device output: %s", raw)
        log.debug("No response received from device (timeout)")
        return None

    async def _run(self, encoding: Encoding) -> CommandResult:
        if encoding.advisory:
            log.info(encoding.advisory)
        response = await self.send_command(encoding.command)
        return CommandResult(line=encoding.command.line, advisory=encoding.advisory, response=response)

    def _require_connected(self) -> None:
        if self.state is not ConnectionState.CONNECTED:
            raise NotConnected("Serial port is not open. Call connect() first.")

    async def turn_on(self) -> CommandResult:
        self._require_connected()
        return await self._run(encode(Operation.ON, self.protocol))

    async def turn_off(self) -> CommandResult:
        self._require_connected()
        return await self._run(encode(Operation.OFF, self.protocol))

    async def set_color(self, color: str) -> CommandResult:
        self._require_connected()
        return await self._run(encode(Operation.COLOR, self.protocol, color=color))

    async def blink(self, color: str | None = None, interval: int | None = None) -> CommandResult:
        self._require_connected()
        return await self._run(encode(Operation.BLINK, self.protocol, color=color, interval=interval))

    async def blink_2_colors(self, color1: str | None, color2: str, interval: int | None = None) -> CommandResult:
        self._require_connected()
        return await self._run(
            encode(Operation.BLINK2, self.protocol, color=color1, color2=color2, interval=interval)
        )

    async def rainbow(self, interval: int | None = None) -> CommandResult:
        self._require_connected()
        return await self._run(encode(Operation.RAINBOW, self.protocol, interval=interval))


@dataclass
class Intent:
    """Everything the operator asked for in one invocation.

    ``blink`` is True for a plain blink or a color name for a colored one.
    """
    on: bool = False
    off: bool = False
    blink: bool | str = False
    color: str | None = None
    second_color: str | None = None
    rainbow: bool = False
    interval: int | None = None


@dataclass(frozen=True)
class Selection:
    operation: Operation
    color: str | None = None
    color2: str | None = None
    interval: int | None = None


def select_operation(intent: Intent) -> Selection:
    """Pick the single operation to run. Priority: on > off > blink > color > rainbow."""
    if intent.on:
        return Selection(Operation.ON)
    if intent.off:
        return Selection(Operation.OFF)
    if intent.blink:
        blink_color = intent.blink if isinstance(intent.blink, str) else intent.color
        if intent.second_color:
            return Selection(Operation.BLINK2, blink_color, intent.second_color, intent.interval)
        return Selection(Operation.BLINK, blink_color, interval=intent.interval)
    if intent.color:
        return Selection(Operation.COLOR, intent.color)
    if intent.rainbow:
        return Selection(Operation.RAINBOW, interval=intent.interval)
    raise InvalidOperation("No action specified. Use --on, --off, --color, --blink, or --rainbow")


async def dispatch(controller: LedController, selection: Selection) -> CommandResult:
    op = selection.operation
    if op is Operation.ON:
        return await controller.turn_on()
    if op is Operation.OFF:
        return await controller.turn_off()
    if op is Operation.BLINK2:
        return await controller.blink_2_colors(selection.color, selection.color2, selection.interval)
    if op is Operation.BLINK:
        return await controller.blink(selection.color, selection.interval)
    if op is Operation.COLOR:
        return await controller.set_color(selection.color)
    return await controller.rainbow(selection.interval)


async def execute_command(
    intent: Intent,
    transport: Transport,
    port: str,
    *,
    baud_rate: int = 9600,
    protocol: ProtocolVariant = ProtocolVariant.RICH_COLOR,
    response_timeout: float | None = DEFAULT_RESPONSE_TIMEOUT,
) -> CommandResult:
    """Connect, run the highest-priority requested action, and always disconnect."""
    selection = select_operation(intent)
    controller = LedController(
        transport,
        port,
        baud_rate=baud_rate,
        protocol=protocol,
        response_timeout=response_timeout,
    )
    async with controller:
        return await dispatch(controller, selection)
