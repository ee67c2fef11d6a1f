"""CLI entry point for cc-led."""

import asyncio
import json as jsonmod
import logging

import click

from cc_led import __version__
from cc_led.boards import BoardNotFoundError, get_board, list_boards
from cc_led.config import LOG_LEVELS, resolve_settings
from cc_led.controller import ControllerError, Intent, execute_command
from cc_led.protocol import ProtocolError
from cc_led.serial.port import SerialError, SerialTransport, list_serial_ports
from cc_led.toolchain import ArduinoCli, ToolchainError

_ERRORS = (ProtocolError, ControllerError, ToolchainError, SerialError, BoardNotFoundError)


def _fail(error) -> None:
    click.echo(f"Error: {error.message}")
    code = error.exit_code
    raise SystemExit(code if isinstance(code, int) and 0 < code < 256 else 1)


def _settings(ctx, **overrides):
    try:
        return resolve_settings(
            board_id=ctx.obj["board"],
            log_level=overrides.pop("log_level", None) or ctx.obj["log_level"],
            **overrides,
        )
    except BoardNotFoundError as e:
        _fail(e)
    except ValueError as e:
        raise click.UsageError(str(e))


def _arduino(settings) -> ArduinoCli:
    return ArduinoCli(
        fqbn=settings.fqbn,
        log_level=settings.log_level,
        on_stdout=lambda text: click.echo(text, nl=False),
        on_stderr=lambda text: click.echo(text, nl=False, err=True),
    )


@click.group()
@click.version_option(__version__, prog_name="cc-led")
@click.option("--board", type=str, default=None, help="Target board (e.g. xiao-rp2040). Use 'cc-led boards' to list.")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default=None, help="arduino-cli log level.")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx, board, log_level, verbose):
    """Control board LEDs and manage Arduino sketches."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["board"] = board
    ctx.obj["log_level"] = log_level


@main.command()
@click.option("-p", "--port", type=str, help="Serial port (e.g. COM3 or /dev/ttyACM0).")
@click.option("--baud", type=int, default=None, help="Baud rate.")
@click.option("--on", "on", is_flag=True, help="Turn LED on.")
@click.option("--off", "off", is_flag=True, help="Turn LED off.")
@click.option("-c", "--color", type=str, help="Color name (red, green, blue, yellow, purple, cyan, white) or R,G,B.")
@click.option("-b", "--blink", type=str, is_flag=False, flag_value="", default=None,
              help="Blink, optionally in the given color (defaults to white).")
@click.option("-s", "--second-color", type=str, help="Second color for two-color blinking.")
@click.option("-i", "--interval", type=int, default=None, help="Blink interval or rainbow speed in milliseconds.")
@click.option("-r", "--rainbow", is_flag=True, help="Rainbow effect.")
@click.option("--response-timeout", type=float, default=2.0, show_default=True,
              help="Seconds to wait for the device reply (0 to skip).")
@click.pass_context
def led(ctx, port, baud, on, off, color, blink, second_color, interval, rainbow, response_timeout):
    """Control the board LED."""
    settings = _settings(ctx, port=port, baud_rate=baud)
    if settings.port is None:
        raise click.UsageError(
            "Serial port not specified. Use --port, set SERIAL_PORT, or set serial.port in cc-led.toml"
        )
    board = get_board(settings.board_id)

    if blink is None:
        blink_intent = False
    else:
        blink_intent = blink or True

    intent = Intent(
        on=on,
        off=off,
        blink=blink_intent,
        color=color,
        second_color=second_color,
        rainbow=rainbow,
        interval=interval,
    )
    try:
        result = asyncio.run(execute_command(
            intent,
            SerialTransport(),
            settings.port,
            baud_rate=settings.baud_rate,
            protocol=board.protocol,
            response_timeout=response_timeout or None,
        ))
    except _ERRORS as e:
        _fail(e)

    if result.advisory:
        click.echo(result.advisory)
    click.echo(f"Sent command: {result.line}")
    if result.response is not None:
        click.echo(f"Device response: {result.response.raw}")
        if not result.response.accepted:
            click.echo(f"Error: device rejected command: {result.response.detail}")
            raise SystemExit(1)
    click.echo("Command executed successfully")


def _load_sketch_board(ctx, sketch, **overrides):
    settings = _settings(ctx, **overrides)
    board = get_board(settings.board_id)
    if not board.supports_sketch(sketch):
        click.echo(f"Error: Sketch '{sketch}' is not supported on {board.name}")
        raise SystemExit(1)
    return settings, board


@main.command("compile")
@click.argument("sketch")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default=None, help="Overrides the global log level.")
@click.pass_context
def compile_cmd(ctx, sketch, log_level):
    """Compile an Arduino sketch."""
    settings, board = _load_sketch_board(ctx, sketch, log_level=log_level)
    click.echo(f"Compiling sketch '{sketch}' for board '{settings.fqbn or board.fqbn}'...")
    try:
        asyncio.run(_arduino(settings).compile(sketch, board, settings.log_level))
    except _ERRORS as e:
        _fail(e)
    click.echo("Compilation successful")


@click.command()
@click.argument("sketch")
@click.option("-p", "--port", type=str, help="Serial port (e.g. COM3 or /dev/ttyACM0).")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default=None, help="Overrides the global log level.")
@click.pass_context
def deploy(ctx, sketch, port, log_level):
    """Upload an Arduino sketch to the board."""
    settings, board = _load_sketch_board(ctx, sketch, port=port, log_level=log_level)
    target_port = settings.port
    if target_port is None:
        raise click.UsageError(
            "Serial port not specified. Use --port, set SERIAL_PORT, or set serial.port in cc-led.toml"
        )
    click.echo(f"Uploading sketch '{sketch}' to board '{settings.fqbn or board.fqbn}' on port '{target_port}'...")
    try:
        asyncio.run(_arduino(settings).upload(sketch, target_port, board, settings.log_level))
    except _ERRORS as e:
        _fail(e)
    click.echo("Upload successful")


main.add_command(deploy, "deploy")
main.add_command(deploy, "upload")


@main.command()
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default=None, help="Overrides the global log level.")
@click.pass_context
def install(ctx, log_level):
    """Install the board core and libraries."""
    settings = _settings(ctx, log_level=log_level)
    board = get_board(settings.board_id)
    try:
        asyncio.run(_arduino(settings).install(board, settings.log_level))
    except _ERRORS as e:
        _fail(e)
    click.echo(f"Installation complete for {board.name}")


@main.command()
def boards():
    """List supported boards."""
    supported = list_boards()
    click.echo(f"Available boards ({len(supported)}):\n")
    for b in supported:
        click.echo(f"  {b.id:<20} {b.name:<24} {b.protocol.value}")
    click.echo("\nUse --board <id> to select a board")


@main.command()
@click.pass_context
def sketches(ctx):
    """List available sketches for a board."""
    settings = _settings(ctx)
    board = get_board(settings.board_id)
    available = board.available_sketches()
    click.echo(f"Available sketches for {board.name}:\n")
    if not available:
        click.echo("  No sketches available for this board.")
        return
    for s in available:
        click.echo(f"  {s.name}")
        click.echo(f"    {s.description}")
        click.echo(f"    Path: {s.path}\n")


@main.command()
def examples():
    """Show usage examples."""
    click.echo("""LED control:
  cc-led led --on                             Turn LED on
  cc-led led --off                            Turn LED off
  cc-led led --color red                      Set LED to red
  cc-led led --color 255,100,0                Set a custom RGB color
  cc-led led --blink                          Blink white
  cc-led led --blink green --interval 250     Blink green every 250 ms
  cc-led led --blink red --second-color blue  Alternate red and blue
  cc-led led --rainbow                        Rainbow effect

Firmware:
  cc-led compile UniversalLedControl
  cc-led deploy UniversalLedControl -p /dev/ttyACM0
  cc-led install
  cc-led --board raspberry-pi-pico compile LEDBlink

arduino-cli logging:
  cc-led --log-level debug compile LEDBlink
  cc-led compile LEDBlink --log-level trace

Digital LED boards (Arduino Uno R4, Raspberry Pi Pico) ignore colors:
  cc-led --board arduino-uno-r4 led --color red   Same as --on

The port can be given with --port, SERIAL_PORT, or serial.port in cc-led.toml.""")


@main.command()
@click.pass_context
def version(ctx):
    """Show cc-led and arduino-cli versions."""
    click.echo(f"cc-led {__version__}")
    settings = _settings(ctx)
    try:
        output = asyncio.run(ArduinoCli(log_level=settings.log_level).version())
    except ToolchainError as e:
        click.echo(f"arduino-cli: unavailable ({e.message})")
        raise SystemExit(1)
    click.echo(output)


@main.command()
@click.option("--json", "use_json", is_flag=True, help="Output JSON.")
def ports(use_json):
    """List available serial ports."""
    found = list_serial_ports()
    if use_json:
        data = [{"device": p.device, "description": p.description, "hwid": p.hwid} for p in found]
        click.echo(jsonmod.dumps(data, indent=2))
        return
    if not found:
        click.echo("No serial ports found.")
        return
    for p in found:
        click.echo(f"  {p.device:<25} {p.description}")


@main.command()
def doctor():
    """Check your environment."""
    ok = True

    result = ArduinoCli().doctor()
    if result["ok"]:
        click.echo(f"[OK] {result['message']}")
    else:
        click.echo(f"[!!] {result['message']}")
        ok = False

    found = list_serial_ports()
    if found:
        click.echo("[OK] Serial ports found:")
        for p in found:
            click.echo(f"     {p.device}")
    else:
        click.echo("[!!] No serial ports detected. Is a board connected via USB?")
        ok = False

    if ok:
        click.echo("\nAll checks passed.")
    else:
        click.echo("\nSome checks failed. Fix the issues above.")
