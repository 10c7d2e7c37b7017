"""Rich output formatting helpers for the kitlock CLI.

Provides consistent terminal output for resolved locks, verification
results and fetched kits.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from kitlock.core.lock import Lock, LockedImage, LockedSDK

console = Console()
err_console = Console(stderr=True)


def _locked_image_table(title: str, images: list[LockedImage]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Vendor", style="dim")
    table.add_column("Source")
    table.add_column("Digest", style="cyan", overflow="fold")
    for image in images:
        table.add_row(image.name, image.version, image.vendor, image.source, image.digest)
    return table


def print_lock_summary(lock: Lock, title: str = "Twoliter.lock") -> None:
    """Print the SDK and kits of a lock.

    Args:
        lock: The resolved or verified lock.
        title: Panel title.
    """
    console.print(Panel(f"[bold green]SDK[/bold green] {lock.sdk}", title=title))
    if lock.kit:
        console.print(_locked_image_table("Kits", lock.kit))
    else:
        console.print("[dim]No kit dependencies.[/dim]")


def print_sdk_summary(sdk: LockedSDK) -> None:
    """Print a verified SDK."""
    console.print(
        Panel(f"[bold green]Verified[/bold green] {sdk.image}", title="SDK Verification")
    )


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(
        f"[bold red]Error:[/bold red] {escape(message)}", highlight=False, soft_wrap=True
    )


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout.

    Args:
        data: Any JSON-serializable data structure.
    """
    console.print_json(json.dumps(data, default=str))
