"""
Command-line entry point.

Reads the command from CLI args and the access token from CRM_ACCESS_TOKEN,
then runs it against the configured API.
"""

import asyncio
import json
import os
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from crm_console.auth.context import AuthContext
from crm_console.config import settings
from crm_console.errors import ConsoleError
from crm_console.infrastructure.observability.logging import get_logger, setup_logging
from crm_console.main import Console, create_console
from crm_console.services.api_client import to_user_message

logger = get_logger(__name__)

CommandCoroutine = Callable[[Console, AuthContext, list[str]], Awaitable[None]]


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def whoami(console: Console, auth: AuthContext, args: list[str]) -> None:
    result = await console.users.me(auth)
    if result.is_error:
        raise result.error
    _print_json(result.data.model_dump(mode="json", by_alias=True) if result.data else None)


async def list_people(console: Console, auth: AuthContext, args: list[str]) -> None:
    result = await console.people.list(auth)
    if result.is_error:
        raise result.error
    _print_json([p.model_dump(mode="json", by_alias=True) for p in result.data or []])


async def export_roster(console: Console, auth: AuthContext, args: list[str]) -> None:
    target = Path(args[0]) if args else Path("roster.csv")
    target.write_bytes(await console.roster.export_csv(auth))
    logger.info("Roster written", path=str(target))


COMMAND_REGISTRY: dict[str, CommandCoroutine] = {
    "whoami": whoami,
    "people": list_people,
    "export-roster": export_roster,
}


async def run_command(name: str, args: list[str] | None = None, console: Console | None = None) -> None:
    """Run one registered command."""
    name = name.strip().lower()
    if name not in COMMAND_REGISTRY:
        raise ValueError(
            f"Unknown command '{name}'. "
            f"Available commands: {', '.join(sorted(COMMAND_REGISTRY.keys()))}"
        )

    auth = AuthContext.from_token(os.getenv("CRM_ACCESS_TOKEN"))
    if not auth.is_authenticated:
        raise ConsoleError("CRM_ACCESS_TOKEN is not set")

    logger.info("Running command", command=name, role=auth.role)
    console = console or create_console()
    async with console:
        await COMMAND_REGISTRY[name](console, auth, args or [])


def main() -> None:
    """CLI entrypoint."""
    setup_logging(settings.LOG_LEVEL)
    if len(sys.argv) < 2:
        print(f"usage: crm-console <{'|'.join(sorted(COMMAND_REGISTRY))}> [args]", file=sys.stderr)
        sys.exit(2)
    try:
        asyncio.run(run_command(sys.argv[1], sys.argv[2:]))
    except (ConsoleError, ValueError) as e:
        print(to_user_message(e), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
