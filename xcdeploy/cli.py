"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging

import typer

from xcdeploy.core.errors import XcdeployError
from xcdeploy.core.logstream import wait_for_background_tasks
from xcdeploy.core.model import RunConfig, ToolReply, parse_environment
from xcdeploy.core.service import XcodeService

app = typer.Typer(help="Build, install and launch Xcode projects on physical iOS devices")


def _build_service() -> XcodeService:
    service = XcodeService()
    for warning in getattr(service, "runtime_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


async def _run_and_follow(service: XcodeService, config: RunConfig) -> ToolReply:
    reply = await service.run_on_device(config)
    if not reply.is_error:
        typer.echo(reply.text)
        await wait_for_background_tasks()
    return reply


@app.command("devices")
def list_devices(
    refresh: bool = typer.Option(False, "--refresh", help="Ignore the device cache"),
) -> None:
    """List connected physical devices with both identifiers."""
    try:
        service = _build_service()
        devices = asyncio.run(service.list_devices(force_refresh=refresh))
        if not devices:
            typer.echo("No devices found")
            return

        for device in devices:
            status = "available" if device.available else "unavailable"
            typer.echo(
                f"{device.name}: udid={device.primary_id or '-'} "
                f"coredevice={device.secondary_id or '-'} ({status})"
            )
    except XcdeployError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("run")
def run_on_device(
    device: str = typer.Argument(..., help="Device name, UDID or CoreDevice identifier"),
    project: str = typer.Option("", "--project", help="Path to .xcodeproj or .xcworkspace"),
    scheme: str = typer.Option("", "--scheme", help="Scheme to build and run"),
    configuration: str = typer.Option("Debug", "--configuration", help="Build configuration"),
    env: str | None = typer.Option(None, "--env", help="Environment as key1=value1,key2=value2"),
    xcode: str | None = typer.Option(None, "--xcode", help="Xcode.app to use"),
    bundle_id: str | None = typer.Option(None, "--bundle-id", help="Launch this bundle without building"),
    skip_build: bool = typer.Option(False, "--skip-build", help="Launch the installed app"),
    start_stopped: bool = typer.Option(False, "--start-stopped", help="Start suspended for a debugger"),
    stream_logs: bool = typer.Option(False, "--stream-logs", help="Start a console stream after launch"),
    launch_arg: list[str] = typer.Option([], "--launch-arg", help="Extra devicectl launch argument"),
) -> None:
    """Build, install and launch an app on a physical device."""
    if stream_logs:
        _configure_logging(verbose=False)
    try:
        service = _build_service()
        config = RunConfig(
            project_path=project,
            scheme=scheme,
            device=device,
            configuration=configuration,
            stream_logs=stream_logs,
            start_stopped=start_stopped,
            environment=parse_environment(env),
            xcode_path=xcode,
            skip_build=skip_build,
            extra_launch_args=tuple(launch_arg),
            direct_bundle_id=bundle_id,
        )
        reply = asyncio.run(_run_and_follow(service, config))
    except XcdeployError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if reply.is_error:
        typer.echo(f"Error: {reply.text}", err=True)
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    """Serve the Xcode tools over MCP stdio."""
    _configure_logging(verbose=verbose)
    from xcdeploy.server import build_server

    try:
        server = build_server(_build_service())
    except XcdeployError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    server.run()


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run() -> None:
    app()


if __name__ == "__main__":
    run()
