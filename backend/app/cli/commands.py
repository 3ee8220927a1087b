"""Click CLI commands for the MetaApi gateway."""

from __future__ import annotations

import sys

import click
import httpx

from app.config import AppConfig


@click.group()
def cli() -> None:
    """metaapi-gateway: HTTP facade over MetaApi trading accounts."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default from config).")
@click.option("--port", default=None, type=int, help="Port (default from config).")
def serve(host: str | None, port: int | None) -> None:
    """Start the HTTP gateway."""
    import uvicorn

    from app.api.main import create_app, endpoint_lines
    from app.utils.logging import setup_logging, uvicorn_log_config

    overrides: dict[str, object] = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port

    cfg = AppConfig()
    if overrides:
        cfg = cfg.model_copy(
            update={"web": cfg.web.model_copy(update=overrides)},
        )

    setup_logging(level=cfg.log_level, log_format=cfg.log_format)
    app = create_app(cfg)

    click.echo(f"MetaAPI server starting on http://{cfg.web.host}:{cfg.web.port}")
    click.echo("\nEndpoints:")
    for line in endpoint_lines(app):
        click.echo(f"  {line}")
    click.echo("")

    uvicorn.run(
        app,
        host=cfg.web.host,
        port=cfg.web.port,
        log_config=uvicorn_log_config(cfg.log_level),
    )


@cli.command()
def health() -> None:
    """Check whether the gateway is up."""
    cfg = AppConfig()
    host = "127.0.0.1" if cfg.web.host == "0.0.0.0" else cfg.web.host
    url = f"http://{host}:{cfg.web.port}/health"
    try:
        resp = httpx.get(url, timeout=5.0)
    except (httpx.ConnectError, httpx.ReadError, httpx.TimeoutException):
        click.echo("Gateway is not running (could not connect).")
        sys.exit(1)
    click.echo(resp.text)
    if resp.status_code != 200:
        sys.exit(1)


@cli.command()
def config() -> None:
    """Show current configuration."""
    cfg = AppConfig()

    click.echo("=== MetaApi Gateway Configuration ===\n")

    click.echo(f"Log Level:    {cfg.log_level}")
    click.echo(f"Log Format:   {cfg.log_format}")
    click.echo("")

    click.echo("[Web]")
    click.echo(f"  Host:       {cfg.web.host}")
    click.echo(f"  Port:       {cfg.web.port}")
    click.echo(f"  CORS:       {', '.join(cfg.cors.allow_origins)}")
    click.echo("")

    click.echo("[Provider]")
    click.echo(f"  Domain:           {cfg.provider.domain}")
    click.echo(f"  Region:           {cfg.provider.region or 'default'}")
    click.echo(f"  Request Timeout:  {cfg.provider.request_timeout}s")
    click.echo("")

    click.echo("[History]")
    click.echo(f"  Default Limit:    {cfg.history.default_limit}")
    click.echo(f"  Default Days:     {cfg.history.default_days}")
