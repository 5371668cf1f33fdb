"""Shared CLI logging setup and error handling."""

import functools
import logging
from collections.abc import Callable

import typer
from rich.console import Console
from rich.logging import RichHandler

from live_set_splitter.exceptions import DetectionError

EXIT_USER_ERROR = 50
EXIT_DETECTION_ERROR = 51
EXIT_INTERRUPT = 130

stderr_console = Console(stderr=True)


def setup_logging(verbose: bool = False):
    """Configure logging with Rich handler on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=stderr_console, rich_tracebacks=True, show_time=True)],
        force=True,
    )


def cli_error_handler(func: Callable) -> Callable:
    """Wrap a CLI command to catch common exceptions with consistent exit codes.

    A detection shortfall gets its own exit code so scripts can retry with a
    timestamps file instead.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, SystemExit):
            raise
        except KeyboardInterrupt:
            stderr_console.print("\n[bold yellow]Interrupted by user[/bold yellow]")
            raise typer.Exit(code=EXIT_INTERRUPT)
        except DetectionError as e:
            stderr_console.print(f"[bold red]Detection failed:[/bold red] {e}")
            raise typer.Exit(code=EXIT_DETECTION_ERROR)
        except (FileNotFoundError, FileExistsError, ValueError, RuntimeError) as e:
            stderr_console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=EXIT_USER_ERROR)
        except Exception as e:
            stderr_console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=EXIT_USER_ERROR)

    return wrapper
