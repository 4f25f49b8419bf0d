"""Typer CLI entrypoint."""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NoReturn

import typer

from babblectl.api import Client
from babblectl.core.commands import Mode
from babblectl.core.errors import BabbleError
from babblectl.core.model import Command, Failure
from babblectl.core.session import FirmwareSession
from babblectl.core.session_legacy import LegacyFirmwareSession

app = typer.Typer(help="Babble tracking board firmware control over serial")

PORT_OPTION = typer.Option(..., "--port", "-p", help="Serial port, e.g. /dev/ttyACM0 or COM3")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_client() -> Client:
    client = Client()
    for warning in client.catalog_warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return client


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


@contextmanager
def _open_session(client: Client, port: str) -> Iterator[FirmwareSession]:
    session = client.open(port)
    try:
        yield session
    finally:
        session.close()


def _format(value: Any) -> str:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    return json.dumps(value)


def _run(session: FirmwareSession, command: Command, timeout: float) -> Any:
    result = session.send_command(command, timeout)
    if isinstance(result, Failure):
        _fail(result.message)
    return result.value


@app.command("ports")
def list_ports() -> None:
    """List serial ports that would be probed."""
    try:
        ports = _build_client().list_ports()
        if not ports:
            typer.echo("No serial ports found")
            return
        for port in ports:
            typer.echo(port)
    except BabbleError as exc:
        _fail(str(exc))


@app.command("commands")
def list_commands() -> None:
    """List catalog commands and the firmware versions they support."""
    try:
        client = _build_client()
        for command_id, spec in sorted(client.catalog.specs.items()):
            typer.echo(f"{command_id}: {spec.command} [{spec.versions}]")
    except BabbleError as exc:
        _fail(str(exc))


@app.command("probe")
def probe(port: str | None = typer.Option(None, "--port", "-p", help="Probe a single port")) -> None:
    """Negotiate with boards and print the dialect and firmware version found."""
    found: list[tuple[str, FirmwareSession]] = []
    try:
        client = _build_client()
        if port:
            found.append((port, client.open(port)))
        else:
            found.extend((mapping.port, mapping.session) for mapping in client.discover())
        if not found:
            typer.echo("No boards found")
            raise typer.Exit(code=1)
        for name, session in found:
            typer.echo(f"{name} {session.dialect} v{session.version}")
    except BabbleError as exc:
        _fail(str(exc))
    finally:
        for _, session in found:
            session.close()


@app.command("info")
def info(port: str = PORT_OPTION) -> None:
    """Print board identity."""
    try:
        client = _build_client()
        with _open_session(client, port) as session:
            typer.echo(f"Dialect: {session.dialect} v{session.version}")
            if session.dialect == "current":
                who = _run(session, client.commands.get_who_am_i(), client.settings.command_timeout_s)
                serial = _run(session, client.commands.get_serial(), client.settings.command_timeout_s)
                typer.echo(f"Board: {who.who_am_i} firmware {who.version}")
                typer.echo(f"Serial: {serial.serial} mac={serial.mac}")
            elif isinstance(session, LegacyFirmwareSession) and session.last_heartbeat is not None:
                heartbeat = session.last_heartbeat
                typer.echo(f"Board: {heartbeat.heartbeat}")
                if heartbeat.serial:
                    typer.echo(f"Serial: {heartbeat.serial}")
    except BabbleError as exc:
        _fail(str(exc))


@app.command("mode")
def mode(
    value: Mode | None = typer.Argument(None, help="Mode to switch to"),
    port: str = PORT_OPTION,
) -> None:
    """Show the device mode, or switch it when VALUE is given."""
    try:
        client = _build_client()
        with _open_session(client, port) as session:
            timeout = client.settings.command_timeout_s
            if value is None:
                command = client.commands.get_device_mode(legacy=session.dialect == "legacy")
                typer.echo(f"Mode: {_format(_run(session, command, timeout))}")
                return
            _run(session, client.commands.switch_mode(value), timeout)
            typer.echo(f"Switched {port} to {value.value}")
    except BabbleError as exc:
        _fail(str(exc))


@app.command("wifi")
def wifi(ssid: str, password: str, port: str = PORT_OPTION) -> None:
    """Store Wi-Fi credentials on the board."""
    try:
        client = _build_client()
        with _open_session(client, port) as session:
            _run(session, client.commands.set_wifi(ssid, password), client.settings.command_timeout_s)
            typer.echo(f"Wi-Fi credentials for '{ssid}' sent to {port}")
    except BabbleError as exc:
        _fail(str(exc))


@app.command("scan")
def scan(port: str = PORT_OPTION) -> None:
    """Scan for Wi-Fi networks visible to the board."""
    try:
        client = _build_client()
        with _open_session(client, port) as session:
            found = _run(session, client.commands.scan_networks(), client.settings.scan_timeout_s)
            if not found.networks:
                typer.echo("No networks found")
                return
            for network in found.networks:
                typer.echo(f"{network.ssid} ch={network.channel} rssi={network.rssi}")
    except BabbleError as exc:
        _fail(str(exc))


@app.command("restart")
def restart(port: str = PORT_OPTION) -> None:
    """Restart the board."""
    try:
        client = _build_client()
        with _open_session(client, port) as session:
            _run(session, client.commands.restart_device(), client.settings.command_timeout_s)
            typer.echo(f"Restart requested on {port}")
    except BabbleError as exc:
        _fail(str(exc))


@app.command("send")
def send(
    command_id: str,
    port: str = PORT_OPTION,
    data: str | None = typer.Option(None, "--data", help="JSON payload"),
) -> None:
    """Send any catalog command and print the decoded reply."""
    try:
        payload = json.loads(data) if data is not None else None
    except json.JSONDecodeError as exc:
        _fail(f"--data is not valid JSON: {exc}")
    try:
        client = _build_client()
        command = client.catalog.build(command_id, payload)
        with _open_session(client, port) as session:
            typer.echo(_format(_run(session, command, client.settings.command_timeout_s)))
    except BabbleError as exc:
        _fail(str(exc))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
