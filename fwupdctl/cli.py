"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from fwupdctl.core.errors import FwupdError
from fwupdctl.core.model import ExitCode
from fwupdctl.core.service import FirmwareService

app = typer.Typer(help="Inspect, update and reset device firmware over BLE")


def _echo(text: str) -> None:
    typer.echo(text, nl=False)


def _build_service(ctx: typer.Context) -> FirmwareService:
    service = FirmwareService(profile_id=ctx.obj["profile"], echo=_echo)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _finish(code: ExitCode) -> None:
    if code != ExitCode.OK:
        raise typer.Exit(code=int(code))


@app.callback()
def main(
    ctx: typer.Context,
    address: str = typer.Argument(..., metavar="BD_ADDR", help="Device Bluetooth address"),
    profile: str | None = typer.Option(None, "--profile", help="Device profile ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log protocol details to stderr"),
) -> None:
    """Talk to the firmware update service of the device at BD_ADDR."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {"address": address, "profile": profile}


@app.command("get-info")
def get_info(ctx: typer.Context) -> None:
    """Get device information."""
    try:
        service = _build_service(ctx)
        code = service.get_info(ctx.obj["address"])
    except FwupdError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=int(exc.exit_code)) from None
    _finish(code)


@app.command("update")
def update(
    ctx: typer.Context,
    firmware: Path = typer.Argument(..., metavar="FIRMWARE", help="Firmware image to upload"),
) -> None:
    """Update device firmware."""
    try:
        service = _build_service(ctx)
        code = service.update(ctx.obj["address"], firmware)
    except FwupdError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=int(exc.exit_code)) from None
    _finish(code)


@app.command("reset")
def reset(ctx: typer.Context) -> None:
    """Reset the device."""
    try:
        service = _build_service(ctx)
        code = service.reset(ctx.obj["address"])
    except FwupdError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=int(exc.exit_code)) from None
    _finish(code)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
