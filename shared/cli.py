"""Console output helpers for the command line tools."""

import functools
import sys
from typing import Any, Callable, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {escape(message)}")


def success(message: str) -> None:
    console.print(f"[green]✓[/green] {escape(message)}")


def warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def error(message: str) -> None:
    err_console.print(f"[red]✗[/red] {escape(message)}")


def confirm(question: str, default: bool = False) -> bool:
    """Ask a yes/no question on the console."""
    return Confirm.ask(question, default=default, console=console)


def create_table(title: Optional[str] = None) -> Table:
    """Create a table with the common style."""
    return Table(title=title, show_header=True, header_style="bold")


def print_table(table: Table) -> None:
    console.print(table)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Turn unexpected exceptions in a CLI entry point into an error message.

    Click's own exceptions (including sys.exit) pass through untouched.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.exceptions.Abort, click.ClickException, SystemExit):
            raise
        except KeyboardInterrupt:
            warning("Interrupted")
            sys.exit(130)
        except Exception as e:
            error(f"Unexpected error: {e}")
            sys.exit(1)

    return wrapper
