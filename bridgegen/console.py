#!/usr/bin/env python3

from rich.console import Console as RichConsole
from rich.markup import escape


class Console:
    """Console wrapper for everything bridgegen shows the user."""

    def __init__(self, stderr: bool = False):
        self._rich = RichConsole(stderr=stderr)

    def print(self, *args, **kwargs):
        return self._rich.print(*args, **kwargs)

    def plain(self, text: str):
        """Print text verbatim, without markup or highlighting."""
        return self._rich.print(text, markup=False, highlight=False)

    def warn(self, message: str):
        return self._rich.print(f"[yellow]warning:[/yellow] {escape(message)}", highlight=False)

    def error(self, message: str):
        return self._rich.print(f"[red]error:[/red] {escape(message)}", highlight=False)
