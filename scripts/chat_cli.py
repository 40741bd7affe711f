#!/usr/bin/env python3
"""Terminal chat for the Fliplet app assistant.

By default this talks to a running server over its HTTP API. With --local it
builds the engine in-process from .env settings and needs no server.
"""

import argparse
import asyncio
from typing import Protocol

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

DEFAULT_BASE_URL = "http://localhost:3000"

EXIT_COMMANDS = {"/quit", "/exit", "quit", "exit"}
RESET_COMMANDS = {"/reset", "reset"}

EXAMPLE_QUESTIONS = (
    "What data sources does this app have?",
    "Show me the first 5 entries in the Users data source",
    "Which users have Status set to Active?",
    "What media files are uploaded?",
)


class ChatBackend(Protocol):
    """Where the CLI sends messages."""

    description: str

    def connect(self) -> None: ...

    def send(self, message: str) -> str: ...

    def reset(self) -> None: ...

    def close(self) -> None: ...


class HttpBackend:
    """Sends messages to the server's /api endpoints and tracks the session id."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, client: httpx.Client | None = None):
        self.base_url = base_url.rstrip("/")
        self.description = f"Server at {self.base_url}"
        self.session_id: str | None = None
        self.client = client or httpx.Client(timeout=120.0)

    def connect(self) -> None:
        try:
            response = self.client.get(f"{self.base_url}/api/health")
        except httpx.HTTPError as e:
            raise ConnectionError(f"Cannot connect to the service at {self.base_url}. Is the server running?") from e
        if response.status_code != 200:
            raise ConnectionError(f"Health check failed with status {response.status_code}")

    def send(self, message: str) -> str:
        payload = {"message": message}
        if self.session_id:
            payload["session_id"] = self.session_id

        response = self.client.post(f"{self.base_url}/api/chat", json=payload)
        if response.status_code == 429:
            raise RuntimeError("Rate limit reached, wait a moment and try again")
        if response.status_code != 200:
            raise RuntimeError(f"API error {response.status_code}: {response.text}")

        data = response.json()
        self.session_id = data["session_id"]
        return data["response"]

    def reset(self) -> None:
        if self.session_id:
            self.client.post(f"{self.base_url}/api/reset", json={"session_id": self.session_id})

    def close(self) -> None:
        self.client.close()


class LocalBackend:
    """Runs one ChatEngine in this process, wired from settings."""

    def __init__(self):
        from app.config import get_settings
        from app.factory import build_components
        from app.utils.logging import LogConfig, setup_logging

        settings = get_settings()
        setup_logging(LogConfig(level="WARNING"))

        self.description = f"Fliplet app {settings.fliplet_app_id} (in-process)"
        self._loop = asyncio.new_event_loop()
        self._components = build_components(settings)
        self._engine = self._components.create_engine()

    def connect(self) -> None:
        pass

    def send(self, message: str) -> str:
        return self._loop.run_until_complete(self._engine.chat(message))

    def reset(self) -> None:
        self._engine.reset()

    def close(self) -> None:
        self._loop.run_until_complete(self._components.aclose())
        self._loop.close()


class ChatCLI:
    """Interactive prompt loop rendering answers as Markdown."""

    def __init__(self, backend: ChatBackend, console: Console | None = None):
        self.backend = backend
        self.console = console or Console()

    def start(self) -> None:
        """Run until the user quits."""
        self.console.print(
            Panel.fit(
                "[bold blue]Fliplet App Assistant[/bold blue]\n"
                f"Connected to: {self.backend.description}\n"
                "Ask anything about your app's data sources and files.\n"
                "Commands: /help, /reset, /quit",
                border_style="blue",
            )
        )

        try:
            self.backend.connect()
        except ConnectionError as e:
            self.console.print(f"[red]{e}[/red]")
            self.backend.close()
            return

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]").strip()
                if not self.handle(user_input):
                    break
        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")
            self.backend.close()

    def handle(self, user_input: str) -> bool:
        """Process one line of input. Returns False when the user wants to quit."""
        command = user_input.lower()
        if command in EXIT_COMMANDS:
            return False
        if command == "/help":
            self._show_help()
        elif command in RESET_COMMANDS:
            self.backend.reset()
            self.console.print("[yellow]Conversation history cleared.[/yellow]")
        elif user_input:
            self._ask(user_input)
        return True

    def _ask(self, message: str) -> None:
        try:
            with self.console.status("[dim]Thinking...[/dim]"):
                answer = self.backend.send(message)
        except Exception as e:
            self.console.print(f"[red]Error: {str(e) or 'An unknown error occurred'}[/red]")
            return

        self.console.print(
            Panel(Markdown(answer), title="[bold green]Assistant[/bold green]", border_style="green", padding=(1, 2))
        )

    def _show_help(self) -> None:
        examples = "\n".join(f'{i}. "{question}"' for i, question in enumerate(EXAMPLE_QUESTIONS, start=1))
        help_text = (
            "[bold]Available Commands:[/bold]\n"
            "• /help - Show this help message\n"
            "• /reset - Clear conversation history\n"
            "• /quit or /exit - Exit the chat\n\n"
            f"[bold]Example Questions:[/bold]\n{examples}"
        )
        self.console.print(Panel(help_text, title="[cyan]Help[/cyan]", border_style="cyan"))


def main() -> None:
    """Main entry point for the chat CLI."""
    parser = argparse.ArgumentParser(description="Chat with the Fliplet app assistant")
    parser.add_argument("base_url", nargs="?", default=DEFAULT_BASE_URL, help="Server URL")
    parser.add_argument("--local", action="store_true", help="Run the assistant in-process instead of over HTTP")
    args = parser.parse_args()

    backend: ChatBackend = LocalBackend() if args.local else HttpBackend(args.base_url)
    ChatCLI(backend).start()


if __name__ == "__main__":
    main()
