"""Main CLI entry point for the lightningd adapter."""

import typer

from lightningd_adapter import __version__
from lightningd_adapter.utils.config import get_settings
from lightningd_adapter.utils.logging import configure_logging

from ..lightning.cli.lightning_cli import app as lightning_app

app = typer.Typer(
    name="lightningd-adapter",
    help="Proxy and normalize a Core Lightning node for the payments platform",
    add_completion=False,
    no_args_is_help=True,
)
app.add_typer(lightning_app, name="lightning")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lightningd-adapter {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Configure logging from settings before any command runs."""
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        dev_mode=settings.dev_mode,
    )


if __name__ == "__main__":
    app()
