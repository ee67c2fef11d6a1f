"""Tests for serial port utilities and the pyserial transport."""

import asyncio
from unittest.mock import patch, MagicMock

import pytest
import serial

from cc_led.serial.port import (
    SerialError,
    SerialTransport,
    list_serial_ports,
    open_serial,
)


class TestListSerialPorts:
    @patch("cc_led.serial.port.comports")
    def test_list_ports(self, mock_comports):
        port1 = MagicMock()
        port1.device = "/dev/ttyACM0"
        port1.description = "Seeed XIAO RP2040"
        port1.hwid = "USB VID:PID=2E8A:000A"
        port2 = MagicMock()
        port2.device = "COM3"
        port2.description = "Arduino Uno R4 Minima"
        port2.hwid = "USB VID:PID=2341:0069"
        mock_comports.return_value = [port1, port2]

        result = list_serial_ports()
        assert len(result) == 2
        assert result[0].device == "/dev/ttyACM0"
        assert result[0].description == "Seeed XIAO RP2040"
        assert result[1].device == "COM3"

    @patch("cc_led.serial.port.comports")
    def test_list_ports_empty(self, mock_comports):
        mock_comports.return_value = []
        assert list_serial_ports() == []


class TestOpenSerial:
    @patch("cc_led.serial.port.serial.Serial")
    def test_open_success(self, mock_serial_class):
        mock_ser = MagicMock()
        mock_serial_class.return_value = mock_ser
        result = open_serial("/dev/ttyACM0", 9600)
        assert result == mock_ser
        mock_serial_class.assert_called_once_with("/dev/ttyACM0", 9600, timeout=1)

    @patch("cc_led.serial.port.serial.Serial")
    def test_open_not_found(self, mock_serial_class):
        mock_serial_class.side_effect = serial.SerialException("could not open port")
        with pytest.raises(SerialError) as exc_info:
            open_serial("/dev/nonexistent", 9600)
        assert exc_info.value.exit_code == 2
        assert exc_info.value.message.startswith("Failed to open port /dev/nonexistent")

    @patch("cc_led.serial.port.serial.Serial")
    def test_open_busy(self, mock_serial_class):
        mock_serial_class.side_effect = serial.SerialException("Device or resource busy")
        with pytest.raises(SerialError) as exc_info:
            open_serial("/dev/ttyACM0", 9600)
        assert exc_info.value.exit_code == 3

    @patch("cc_led.serial.port.serial.Serial")
    def test_open_permission_denied(self, mock_serial_class):
        mock_serial_class.side_effect = PermissionError("Permission denied")
        with pytest.raises(SerialError) as exc_info:
            open_serial("/dev/ttyACM0", 9600)
        assert exc_info.value.exit_code == 4


class TestSerialError:
    def test_to_dict(self):
        err = SerialError("Port not found", exit_code=2)
        d = err.to_dict()
        assert d["error"] == "Port not found"
        assert d["exit_code"] == 2


class TestSerialTransport:
    @patch("cc_led.serial.port.serial.Serial")
    def test_open_uses_timeout(self, mock_serial_class):
        transport = SerialTransport(timeout=0.25)
        asyncio.run(transport.open("COM3", 115200))
        mock_serial_class.assert_called_once_with("COM3", 115200, timeout=0.25)

    def test_write_encodes_and_flushes(self):
        conn = MagicMock()
        asyncio.run(SerialTransport().write(conn, "COLOR,255,0,0\n"))
        conn.write.assert_called_once_with(b"COLOR,255,0,0\n")
        conn.flush.assert_called_once()

    def test_write_failure(self):
        conn = MagicMock()
        conn.write.side_effect = serial.SerialException("write failed")
        with pytest.raises(SerialError, match="Serial write failed") as exc_info:
            asyncio.run(SerialTransport().write(conn, "ON\n"))
        assert exc_info.value.exit_code == 2

    def test_read_line(self):
        conn = MagicMock()
        conn.timeout = 1
        conn.readline.return_value = b"ACCEPTED,ON\r\n"
        line = asyncio.run(SerialTransport().read_line(conn, 0.5))
        assert line == "ACCEPTED,ON"
        assert conn.timeout == 1

    def test_read_line_timeout(self):
        conn = MagicMock()
        conn.readline.return_value = b""
        assert asyncio.run(SerialTransport().read_line(conn, 0.5)) is None

    def test_close_open_port(self):
        conn = MagicMock()
        conn.is_open = True
        asyncio.run(SerialTransport().close(conn))
        conn.close.assert_called_once()

    def test_close_already_closed(self):
        conn = MagicMock()
        conn.is_open = False
        asyncio.run(SerialTransport().close(conn))
        conn.close.assert_not_called()
