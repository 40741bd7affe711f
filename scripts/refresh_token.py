#!/usr/bin/env python3
"""Refresh the Fliplet session token stored in .env.

Fliplet session tokens expire after a period of inactivity. This prompts for
Fliplet credentials, logs in, writes the new FLIPLET_API_TOKEN into .env and
verifies that the token works.
"""

import re
import sys
from pathlib import Path

import httpx
from rich.console import Console
from rich.prompt import Prompt

FLIPLET_API_URL = "https://api.fliplet.com"
ENV_PATH = Path(__file__).resolve().parent.parent / ".env"

console = Console()


def login(client: httpx.Client, email: str, password: str) -> str:
    """Authenticate with Fliplet and return the new auth token."""
    response = client.post(f"{FLIPLET_API_URL}/v1/auth/login", json={"email": email, "password": password})

    if not response.is_success:
        try:
            message = response.json().get("message")
        except ValueError:
            message = None
        raise RuntimeError(message or f"Login failed with status {response.status_code}")

    return response.json()["auth_token"]


def update_env_file(new_token: str, env_path: Path = ENV_PATH) -> None:
    """Replace or append FLIPLET_API_TOKEN in the .env file."""
    if not env_path.exists():
        raise FileNotFoundError(f".env file not found at {env_path}")

    content = env_path.read_text(encoding="utf-8")

    if re.search(r"^FLIPLET_API_TOKEN=", content, flags=re.MULTILINE):
        content = re.sub(
            r"^FLIPLET_API_TOKEN=.*$",
            lambda _: f"FLIPLET_API_TOKEN={new_token}",
            content,
            flags=re.MULTILINE,
        )
    else:
        content += f"\nFLIPLET_API_TOKEN={new_token}\n"

    env_path.write_text(content, encoding="utf-8")


def verify_token(client: httpx.Client, token: str) -> str | None:
    """Return the authenticated user's name if the token works."""
    response = client.get(f"{FLIPLET_API_URL}/v1/user", headers={"Auth-token": token})
    if not response.is_success:
        return None

    user = response.json().get("user") or {}
    return user.get("fullName") or user.get("email") or "OK"


def main() -> None:
    """Main entry point for the token refresh script."""
    console.print("[bold]=== Fliplet Token Refresh ===[/bold]\n")

    email = Prompt.ask("Fliplet email")
    password = Prompt.ask("Fliplet password", password=True)

    console.print("\nAuthenticating...")

    with httpx.Client(timeout=30.0) as client:
        try:
            token = login(client, email, password)
            console.print(f"\nNew token: {token[:20]}...")

            update_env_file(token)
            console.print("Updated .env file with new FLIPLET_API_TOKEN.")

            console.print("\nVerifying token...")
            user = verify_token(client, token)
        except (httpx.HTTPError, RuntimeError, FileNotFoundError) as e:
            console.print(f"\n[red]Error: {e}[/red]")
            sys.exit(1)

    if user:
        console.print(f"Authenticated as: {user}")
        console.print("\n[green]Token refreshed successfully! You can now start the server.[/green]")
    else:
        console.print("[yellow]Warning: Token verification returned non-OK status.[/yellow]")


if __name__ == "__main__":
    main()
