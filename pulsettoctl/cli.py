"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer

from pulsettoctl.core.errors import PulsettoError
from pulsettoctl.core.listener import SessionListener
from pulsettoctl.core.model import ConnectionState, Preset, StatusField
from pulsettoctl.core.presets import preset_from_record
from pulsettoctl.core.protocol import format_elapsed
from pulsettoctl.core.service import PulsettoService

app = typer.Typer(help="Control a Pulsetto stimulation device over Bluetooth LE")

_state: dict[str, Path | None] = {"config": None}


class EchoListener(SessionListener):
    """Prints session notifications to the terminal."""

    def connection_state_changed(self, state: ConnectionState) -> None:
        typer.echo(f"Connection: {state.value}")

    def device_status_changed(self, field: StatusField, value: str) -> None:
        if field is StatusField.BATTERY_VOLTAGE:
            value = f"{value}V"
        typer.echo(f"{field.value}: {value}")

    def session_elapsed_changed(self, minutes: int, seconds: int) -> None:
        typer.echo(f"Elapsed {format_elapsed(minutes * 60 + seconds)}")

    def session_started(self) -> None:
        typer.echo("Session started")

    def session_stopped(self) -> None:
        typer.echo("Session stopped")

    def error(self, kind: str, message: str) -> None:
        typer.echo(f"Warning ({kind}): {message}", err=True)


def _build_service() -> PulsettoService:
    return PulsettoService(config_path=_state["config"])


def _describe(index: int, preset: Preset) -> str:
    return (
        f"[{index}] {preset.name}: {preset.mode.label} / "
        f"intensity {preset.intensity} / {preset.duration_minutes} min"
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.yaml"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _state["config"] = config


@app.command("presets")
def list_presets() -> None:
    """List saved presets."""
    try:
        presets = _build_service().list_presets()
        if not presets:
            typer.echo("No presets saved")
            return
        for index, preset in enumerate(presets):
            typer.echo(_describe(index, preset))
    except PulsettoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("add-preset")
def add_preset(
    name: str,
    mode: str = typer.Option("D", "--mode", help="0/OFF, A/LEFT, C/RIGHT or D/BOTH"),
    intensity: int = typer.Option(5, "--intensity", min=0),
    duration: int = typer.Option(10, "--duration", min=1, help="Minutes"),
) -> None:
    """Save a named preset."""
    try:
        service = _build_service()
        preset = service.save_preset(name, mode, intensity, duration)
        typer.echo(f"Saved {_describe(len(service.list_presets()) - 1, preset)}")
    except PulsettoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("delete-preset")
def delete_preset(index: int) -> None:
    """Delete the preset at INDEX."""
    try:
        removed = _build_service().delete_preset(index)
        typer.echo(f"Deleted '{removed.name}'")
    except PulsettoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("status")
def status(
    wait: float = typer.Option(4.0, "--wait", min=0.0, help="Seconds to listen for reports"),
) -> None:
    """Connect, print what the device reports, and disconnect."""
    try:
        service = _build_service()
        device_status = asyncio.run(service.read_status(EchoListener(), wait_s=wait))
        typer.echo(
            f"Device: {device_status.device_name or '-'} "
            f"firmware={device_status.firmware_version or '-'} "
            f"battery={device_status.battery_voltage or '-'} "
            f"mode={device_status.mode or '-'}"
        )
    except PulsettoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def _run(service: PulsettoService, preset: Preset) -> None:
    typer.echo(f"Running {preset.mode.label} at intensity {preset.intensity} for {preset.duration_minutes} min")
    try:
        asyncio.run(service.run_preset(preset, EchoListener()))
    except KeyboardInterrupt:
        typer.echo("Interrupted; session ended")


@app.command("run")
def run_session(
    mode: str = typer.Option("D", "--mode", help="0/OFF, A/LEFT, C/RIGHT or D/BOTH"),
    intensity: int = typer.Option(5, "--intensity", min=0),
    minutes: int = typer.Option(10, "--minutes", min=1),
) -> None:
    """Run a timed session with the given mode and intensity."""
    try:
        service = _build_service()
        preset = preset_from_record(
            {"name": "ad-hoc", "mode": mode, "intensity": intensity, "duration": minutes}
        )
        _run(service, preset)
    except PulsettoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("preset")
def run_preset(index: int) -> None:
    """Run the saved preset at INDEX until its duration elapses."""
    try:
        service = _build_service()
        _run(service, service.get_preset(index))
    except PulsettoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
