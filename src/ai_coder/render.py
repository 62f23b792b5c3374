"""Status rendering for ai-coder.

Everything here goes to standard error so that it never interleaves with the
generated text on standard output.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

RULE_WIDTH = 60
TAG = "[bold blue]\\[ai-coder][/bold blue]"


class Renderer:
    """Terminal renderer using Rich on standard error."""

    def __init__(self, console: Console | None = None) -> None:
        self.console: Console = console or Console(stderr=True, highlight=False, soft_wrap=True)

    def banner(self, *, mode: str, model: str, host: str) -> None:
        """Render the startup banner."""
        self._print(f"{TAG} Mode: [bold]{escape(mode)}[/bold]")
        self._print(f"{TAG} Using model: [magenta]{escape(model)}[/magenta]")
        self._print(f"{TAG} Connecting to: [cyan]{escape(host)}[/cyan]")
        self._print(f"{TAG} ---\n")

    def info(self, message: str) -> None:
        self._print(f"{TAG} {escape(message)}")

    def warning(self, message: str) -> None:
        self._print(f"{TAG} [yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self._print(f"{TAG} [bold red]Error:[/bold red] {escape(message)}")

    def command_listing(self, commands: list[str]) -> None:
        """Render the commands awaiting approval, verbatim and in order."""
        self._print(f"\n{TAG} Found {len(commands)} shell command(s):")
        self._print("=" * RULE_WIDTH)
        for index, command in enumerate(commands, start=1):
            self._print(f"[dim]{index:>2}.[/dim] {escape(command)}")
        self._print("=" * RULE_WIDTH)

    def command_started(self, command: str) -> None:
        self._print(f"\n{TAG} [dim]$ {escape(command)}[/dim]")

    def command_finished(self, command: str, exit_code: int) -> None:
        if exit_code == 0:
            self._print(f"{TAG} [green]✓ Command succeeded[/green]")
            return
        self._print(f"{TAG} [red]✗ Command failed with exit code {exit_code}:[/red] {escape(command)}")

    def summary(self, total: int, failed: int) -> None:
        if failed:
            self._print(f"{TAG} [yellow]{failed} of {total} command(s) failed[/yellow]")
        else:
            self._print(f"{TAG} All {total} command(s) succeeded")

    def complete(self) -> None:
        self._print(f"{TAG} Complete")

    def ask(self, prompt: str) -> str:
        """Prompt on standard error and read one line from standard input."""
        return self.console.input(f"{TAG} {escape(prompt)}")

    def _print(self, message: str) -> None:
        self.console.print(message)
