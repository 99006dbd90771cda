import os
import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.traceback import install

# keep library frames out of tracebacks
import tomlkit, websockets, watchfiles

console = Console()


def setup_logging():
    logging_handler = RichHandler(
        level=os.environ.get("LOGLEVEL", "INFO"),
        console=console,
        rich_tracebacks=True,
        tracebacks_suppress=[tomlkit, websockets, watchfiles]
    )

    logging.basicConfig(
        level="NOTSET", format="%(message)s", datefmt="[%X]", handlers=[logging_handler]
    )

    # watchfiles logs every batch of changes at INFO
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    install(console=console)


def show_auth_token(token: str, port: int, generated_at: Optional[str] = None):
    """
    print the token control surfaces must send in their auth message
    """
    details = f"port {port}"
    if generated_at:
        details += f", generated {generated_at}"
    console.print(Panel(f"[bold]{token}[/bold]\n{details}", title="Auth token", expand=False))
