"""Authentication commands for the openlogin CLI."""

from __future__ import annotations

import webbrowser

import typer
from rich.console import Console

from ...auth.constants import AUTH_TIMEOUT_SECONDS, PROVIDER_NAME
from ...auth.credentials import CredentialStore
from ...auth.flow import LoginFlow, get_auth_status

app = typer.Typer(help="Manage authentication")
console = Console()


@app.command()
def login(
    no_browser: bool = typer.Option(False, "--no-browser", help="Print the URL instead of opening a browser"),
    timeout: int = typer.Option(AUTH_TIMEOUT_SECONDS, min=1, help="Seconds to wait for the browser callback"),
) -> None:
    """Authenticate via browser and store an API key.

    Opens your browser to log in, then exchanges the result for an API key.
    """

    def show_url(url: str) -> None:
        if no_browser:
            console.print("Open this URL in your browser to log in:\n")
        else:
            console.print("If your browser did not open, visit:\n")
        console.print(url, soft_wrap=True, highlight=False, markup=False)
        console.print()
        console.print("[dim]Waiting for authentication...[/dim]")

    if not no_browser:
        console.print("\n[bold]Opening browser for authentication...[/bold]")
    flow = LoginFlow(
        timeout=timeout,
        open_browser=None if no_browser else webbrowser.open,
        on_auth_url=show_url,
    )
    result = flow.run()

    if result.success:
        console.print("\n[green]Successfully authenticated![/green]")
        console.print(f"API key stored for [bold]{PROVIDER_NAME}[/bold].")
        return

    kind = result.error_kind.value if result.error_kind else "error"
    console.print(f"\n[red]Authentication failed ({kind}): {result.error}[/red]")
    raise typer.Exit(1)


@app.command()
def logout() -> None:
    """Remove stored credentials."""
    if CredentialStore().remove(PROVIDER_NAME):
        console.print("[green]Successfully logged out.[/green]")
    else:
        console.print("[yellow]No credentials found.[/yellow]")


@app.command()
def status() -> None:
    """Show current authentication status."""
    auth_status = get_auth_status(PROVIDER_NAME)

    if not auth_status.authenticated:
        console.print("[yellow]Not authenticated.[/yellow]")
        console.print("Run [bold]openlogin auth login[/bold] to authenticate.")
        raise typer.Exit(1)

    console.print("[green]Authenticated[/green]")
    console.print(f"  API Key: {auth_status.masked_key}")
    console.print(f"  Source: {auth_status.source}")
    if auth_status.source == "config_file":
        console.print(f"  File: {auth_status.config_path}")
