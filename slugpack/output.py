"""User-facing build output.

Build output follows the buildpack convention: stage headings are printed as
``-----> message`` and tool output is indented underneath.
"""

from rich.console import Console

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)


def topic(message: str) -> None:
    """Print a stage heading."""
    console.print(f"-----> {message}", markup=False)


def echo(message: str) -> None:
    """Print a line of indented detail output."""
    for line in message.rstrip("\n").splitlines() or [""]:
        console.print(f"       {line}", markup=False)


def error(message: str) -> None:
    """Print a fatal error message on stderr."""
    for line in message.rstrip("\n").splitlines() or [""]:
        err_console.print(f" !     {line}", markup=False)


__all__ = ["console", "echo", "err_console", "error", "topic"]
