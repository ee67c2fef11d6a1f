"""Tests for the filesystem and process adapters."""

import asyncio
import sys
from unittest.mock import patch

import pytest

from cc_led.adapters import AsyncioProcessExecutor, LocalFileSystem
from cc_led.adapters.process import shell_command_line


class TestLocalFileSystem:
    def test_write_then_read(self, tmp_path):
        fs = LocalFileSystem()
        path = tmp_path / "arduino-cli.yaml"
        assert not fs.exists(path)
        fs.write_text(path, "directories:\n")
        assert fs.exists(path)
        assert fs.read_text(path) == "directories:\n"

    def test_directory_exists(self, tmp_path):
        assert LocalFileSystem().exists(tmp_path)

    def test_read_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalFileSystem().read_text(tmp_path / "missing.txt")


async def _drain(handle):
    out = "".join([chunk async for chunk in handle.stdout()])
    err = "".join([chunk async for chunk in handle.stderr()])
    return out, err, await handle.wait()


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell")
class TestAsyncioProcessExecutor:
    def test_exec(self, tmp_path):
        async def scenario():
            handle = await AsyncioProcessExecutor().spawn(
                sys.executable, ["-c", "import os; print(os.getcwd())"], cwd=tmp_path,
            )
            return await _drain(handle)

        out, err, code = asyncio.run(scenario())
        assert code == 0
        assert out.strip() == str(tmp_path.resolve())

    def test_shell_quotes_arguments(self, tmp_path):
        async def scenario():
            handle = await AsyncioProcessExecutor().spawn(
                "echo", ["lib", "install", "Adafruit NeoPixel@1.15.1"], cwd=tmp_path, shell=True,
            )
            return await _drain(handle)

        out, _, code = asyncio.run(scenario())
        assert code == 0
        assert out == "lib install Adafruit NeoPixel@1.15.1\n"

    def test_exit_code_and_stderr(self, tmp_path):
        async def scenario():
            handle = await AsyncioProcessExecutor().spawn(
                "sh", ["-c", "echo oops >&2; exit 3"], cwd=tmp_path,
            )
            return await _drain(handle)

        _, err, code = asyncio.run(scenario())
        assert code == 3
        assert err == "oops\n"


class TestShellCommandLine:
    @patch("cc_led.adapters.process.os")
    def test_windows_uses_double_quotes(self, mock_os):
        mock_os.name = "nt"
        line = shell_command_line("arduino-cli", [
            "--config-file", r"C:\work dir\arduino-cli.yaml", "lib", "install", "Adafruit NeoPixel@1.15.1",
        ])
        assert line == (
            r'arduino-cli --config-file "C:\work dir\arduino-cli.yaml" lib install "Adafruit NeoPixel@1.15.1"'
        )
        assert "'" not in line

    @patch("cc_led.adapters.process.os")
    def test_windows_plain_path_unquoted(self, mock_os):
        mock_os.name = "nt"
        line = shell_command_line("arduino-cli", ["--config-file", r"C:\work\arduino-cli.yaml", "version"])
        assert line == r"arduino-cli --config-file C:\work\arduino-cli.yaml version"

    @patch("cc_led.adapters.process.os")
    def test_posix_uses_single_quotes(self, mock_os):
        mock_os.name = "posix"
        line = shell_command_line("arduino-cli", ["lib", "install", "Adafruit NeoPixel@1.15.1"])
        assert line == "arduino-cli lib install 'Adafruit NeoPixel@1.15.1'"
