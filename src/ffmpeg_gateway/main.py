"""CLI entrypoint for ffmpeg-gateway."""

import json
import logging
from dataclasses import replace

import rich_click as click

from ffmpeg_gateway import __version__
from ffmpeg_gateway.config import STORAGE_BACKENDS, Settings
from ffmpeg_gateway.health import check_binary
from ffmpeg_gateway.runtime import GatewayRuntime

click.rich_click.USE_MARKDOWN = True
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.version_option(version=__version__, prog_name="ffmpeg-gateway")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Root logger level.",
)
def ffmpeg_gateway(log_level: str) -> None:
    """Run ffmpeg commands and publish their outputs."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@ffmpeg_gateway.command("serve")
@click.option("--host", default=None, help="Bind address. Defaults to FFMPEG_GATEWAY_HOST.")
@click.option(
    "--port",
    type=click.IntRange(min=1, max=65535),
    default=None,
    help="Listen port. Defaults to PORT.",
)
def serve(host: str | None, port: int | None) -> None:
    """Serve the HTTP API with uvicorn."""

    import uvicorn

    from ffmpeg_gateway.api.app import create_app

    settings = _load_settings()
    server = replace(
        settings.server,
        host=host or settings.server.host,
        port=port or settings.server.port,
    )
    settings = replace(settings, server=server)
    _validate(settings)

    runtime = GatewayRuntime(settings)
    try:
        uvicorn.run(
            create_app(runtime),
            host=server.host,
            port=server.port,
            access_log=server.access_log,
            log_config=None,
        )
    finally:
        runtime.shutdown()


@ffmpeg_gateway.command("run")
@click.argument("command")
@click.option(
    "--storage",
    type=click.Choice(STORAGE_BACKENDS),
    default="memory",
    show_default=True,
    help="Where to publish outputs. `memory` keeps them in-process (dry run).",
)
def run_command(command: str, storage: str) -> None:
    """Run one COMMAND (starting with `ffmpeg `) and print the JSON result."""

    settings = _load_settings()
    settings = replace(settings, storage=replace(settings.storage, backend=storage))
    _validate(settings)

    with GatewayRuntime(settings) as runtime:
        result = runtime.pipeline.execute(command)
    click.echo(json.dumps(result.to_payload(), indent=2))
    if not result.success:
        raise SystemExit(1)


@ffmpeg_gateway.command("health")
def health() -> None:
    """Probe the configured binary and print its version."""

    settings = _load_settings()
    check = check_binary(
        settings.execution.binary_command,
        binary_name=settings.execution.binary_name,
    )
    if not check.ok:
        click.echo(f"status=unhealthy error={check.error}")
        raise SystemExit(1)
    click.echo(f"status=healthy {settings.execution.binary_name}={check.version}")


def _load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ValueError as error:
        raise click.ClickException(str(error)) from error


def _validate(settings: Settings) -> None:
    try:
        settings.validate()
    except ValueError as error:
        raise click.ClickException(str(error)) from error


if __name__ == "__main__":  # pragma: no cover
    ffmpeg_gateway()
