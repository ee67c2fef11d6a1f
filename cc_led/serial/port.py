"""Serial port transport for cc-led."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import serial
from serial.tools.list_ports import comports

log = logging.getLogger(__name__)


@dataclass
class PortInfo:
    device: str
    description: str
    hwid: str


class SerialError(Exception):
    """Structured serial error with exit code."""

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code

    def to_dict(self) -> dict:
        return {"error": self.message, "exit_code": self.exit_code}


def list_serial_ports() -> list[PortInfo]:
    """List available serial ports."""
    ports = []
    for p in comports():
        ports.append(PortInfo(
            device=p.device,
            description=p.description,
            hwid=p.hwid,
        ))
    return ports


def open_serial(port: str, baud_rate: int, timeout: float = 1) -> serial.Serial:
    """Open a serial port with structured error handling.

    Exit codes:
        2: port not found / device disconnected
        3: port busy
        4: permission denied
    """
    try:
        return serial.Serial(port, baud_rate, timeout=timeout)
    except PermissionError as e:
        raise SerialError(f"Failed to open port {port}: {e}", exit_code=4) from e
    except serial.SerialException as e:
        msg = str(e).lower()
        if "busy" in msg or "resource" in msg:
            raise SerialError(f"Failed to open port {port}: {e}", exit_code=3) from e
        raise SerialError(f"Failed to open port {port}: {e}", exit_code=2) from e


class SerialTransport:
    """Async transport over pyserial.

    pyserial is blocking, so every call runs in a worker thread; the event
    loop only ever awaits.
    """

    def __init__(self, timeout: float = 1):
        self.timeout = timeout

    async def open(self, path: str, baud_rate: int) -> serial.Serial:
        ser = await asyncio.to_thread(open_serial, path, baud_rate, self.timeout)
        log.debug("opened %s at %d baud", path, baud_rate)
        return ser

    async def write(self, connection: serial.Serial, line: str) -> None:
        def _write() -> None:
            connection.write(line.encode("ascii"))
            connection.flush()

        try:
            await asyncio.to_thread(_write)
        except (serial.SerialException, OSError) as e:
            raise SerialError(f"Serial write failed: {e}", exit_code=2) from e

    async def read_line(self, connection: serial.Serial, timeout: float) -> str | None:
        """Read one line from the device, or None when nothing arrives in time."""
        def _read() -> bytes:
            previous = connection.timeout
            connection.timeout = timeout
            try:
                return connection.readline()
            finally:
                connection.timeout = previous

        try:
            raw = await asyncio.to_thread(_read)
        except (serial.SerialException, OSError) as e:
            raise SerialError(f"Failed to read from device: {e}", exit_code=2) from e
        if not raw:
            return None
        return raw.decode("utf-8", errors="ignore").strip()

    async def close(self, connection: serial.Serial) -> None:
        if connection.is_open:
            await asyncio.to_thread(connection.close)
            log.debug("closed %s", connection.port)
