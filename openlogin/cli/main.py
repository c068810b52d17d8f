"""Main entry point for the openlogin CLI."""

from __future__ import annotations

import logging

try:
    import typer
except ImportError:
    import sys

    print("openlogin CLI requires extras: pip install openlogin[cli]")
    sys.exit(1)

from rich.logging import RichHandler

from .commands import auth

app = typer.Typer(
    name="openlogin",
    help="openlogin - Log in through your browser and store an API key",
    no_args_is_help=True,
)

app.add_typer(auth.app, name="auth")


def _version_callback(value: bool) -> None:
    """Handle --version and exit early."""
    if value:
        from openlogin import __version__

        typer.echo(f"openlogin {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the CLI version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """openlogin CLI root callback."""
    _ = version
    _configure_logging(verbose)


@app.command()
def version() -> None:
    """Show the CLI version."""
    from openlogin import __version__

    typer.echo(f"openlogin {__version__}")


if __name__ == "__main__":
    app()
