"""CLI entry point for campusreg."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from campusreg import get_version
from campusreg.config import ConfigError, Settings
from campusreg.logging import get_logger, setup_logging

logger = get_logger("cli")


def _load_settings(config_path: Path | None) -> Settings:
    try:
        if config_path is None:
            return Settings.from_env()
        return Settings.from_file(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=get_version(), prog_name="campusreg")
def main() -> None:
    """Campus course registration service."""
    pass


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to a YAML settings file (environment variables take precedence)",
)
@click.option("--host", default=None, help="Interface to bind (default: from settings)")
@click.option("--port", type=int, default=None, help="Port to listen on (default: from settings)")
def serve(config_path: Path | None, host: str | None, port: int | None) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn  # noqa: PLC0415

    from campusreg.api.app import create_app  # noqa: PLC0415

    settings = _load_settings(config_path)
    if host is not None:
        settings.host = host
    if port is not None:
        settings.port = port

    setup_logging(log_dir=settings.log_dir, level=settings.log_level)
    logger.info("Serving on %s:%d (db=%s)", settings.host, settings.port, settings.db_path)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


@main.command("init-db")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to a YAML settings file (environment variables take precedence)",
)
def init_db(config_path: Path | None) -> None:
    """Create the database tables if they don't exist."""
    from campusreg.registry import Registry  # noqa: PLC0415

    settings = _load_settings(config_path)
    registry = Registry(settings.db_path, busy_timeout=settings.busy_timeout_seconds)
    try:
        click.echo(f"Database ready at {settings.db_path}")
    finally:
        registry.close()


if __name__ == "__main__":
    main()
