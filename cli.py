"""
CLI tool for running and inspecting the signaling relay service.

Provides commands for serving the HTTP application together with the
relay WebSocket listener, and for viewing the effective relay settings.
"""

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from signal_relay.settings import app_settings
from signal_relay.uvicorn_filters import install_access_log_filter

typer_app = typer.Typer(
    name="relay-cli",
    help="Signal relay CLI - run the service and inspect its configuration",
    add_completion=False,
)
console = Console()


@typer_app.command(name="serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="HTTP bind host"),
    port: int = typer.Option(8000, help="HTTP bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """
    Run the HTTP application; its lifespan starts the relay listener.

    Example:
        python cli.py serve --port 8000
    """
    config = uvicorn.Config(
        "signal_relay:application",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )
    install_access_log_filter()

    console.print(
        f"[bold cyan]HTTP[/bold cyan] http://{host}:{port}  "
        f"[bold cyan]Relay[/bold cyan] ws://{app_settings.RELAY_HOST}:"
        f"{app_settings.RELAY_PORT}{app_settings.RELAY_PATH}"
    )
    uvicorn.Server(config).run()


@typer_app.command(name="settings")
def show_settings():
    """
    Display the effective relay settings.

    Values come from the environment, falling back to the defaults in
    signal_relay/settings.py.

    Example:
        python cli.py settings
    """
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Signal Relay Settings[/bold cyan]",
            border_style="cyan",
        )
    )
    console.print()

    table = Table("Setting", "Value", title="Effective configuration")

    for name in sorted(type(app_settings).model_fields):
        table.add_row(f"[green]{name}[/green]", str(getattr(app_settings, name)))

    console.print(table)
    console.print()


if __name__ == "__main__":
    typer_app()
