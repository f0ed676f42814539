"""Consolidated display utilities for CLI commands."""
from typing import Any, Dict

from rich.console import Console
from rich.markup import escape

console = Console()


def success(message: str) -> None:
    """Print success message."""
    console.print(f"[green]✓ {message}[/green]")


def warning(message: str) -> None:
    """Print warning message."""
    console.print(f"[yellow]⚠️  {message}[/yellow]")


def error(message: str) -> None:
    """Print error message."""
    console.print(f"[red]❌ {message}[/red]")


def info_dict(data: Dict[str, Any], indent: str = "  ") -> None:
    """Print a dictionary as indented key-value pairs."""
    for key, value in data.items():
        console.print(f"{indent}{key}: {value}")


def payload(version: int, text: str) -> None:
    """Print a value with its store index."""
    console.print(f"[cyan]@{version}[/cyan] {escape(text)}", highlight=False)
