"""Command-line front end for browsing and editing directory users.

This module serves as a CLI wrapper around directory_console.core.console.
Every invocation logs in, bulk-loads the directory and then runs one command.
"""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from directory_console.config import ConsoleConfig, load_settings
from directory_console.core.console import ConsoleView, UserConsole
from directory_console.core.directory import AuthError, DirectoryClient, DirectoryError
from directory_console.core.edit_session import EditIdentifierChannel

EXIT_ERROR = 1
EXIT_AUTH = 2


def build_console(config: ConsoleConfig, channel: EditIdentifierChannel | None = None) -> UserConsole:
    client = DirectoryClient(config.api_base_url, timeout=config.request_timeout, api_key=config.api_key)
    return UserConsole(
        client,
        page_size=config.page_size,
        merge_policy=config.merge_policy,
        channel=channel,
        on_logout=lambda: print("[auth] Session ended - log in again", file=sys.stderr),
    )


def format_view(view: ConsoleView) -> str:
    lines = [
        f"{record.id:>4}  {record.full_name:<28}  {record.email}"
        for record in view.displayed_records
    ]
    if not lines:
        lines.append("  (no users match)")
    lines.append(f"-- page {view.current_page}/{view.total_pages}, {view.result_count} result(s)")
    return "\n".join(lines)


def _edit_fields(args: argparse.Namespace) -> dict:
    fields = {
        "first_name": args.first_name,
        "last_name": args.last_name,
        "email": args.email,
    }
    return {key: value for key, value in fields.items() if value is not None}


async def run(args: argparse.Namespace, config: ConsoleConfig) -> int:
    channel = EditIdentifierChannel(str(args.user_id)) if args.cmd == "show" else None
    console = build_console(config, channel)
    try:
        await console.login(config.email, config.password)
        view = await console.load()

        if args.cmd == "list":
            console.set_search_query(args.query)
            console.set_page(args.page)
            print(format_view(console.view))
        elif args.cmd == "show":
            session = view.edit_session
            if not session.is_open:
                print(f"[show] User {args.user_id} not found", file=sys.stderr)
                return EXIT_ERROR
            print(json.dumps(session.record.to_dict(), indent=2))
        elif args.cmd == "edit":
            console.begin_edit(args.user_id)
            record = await console.submit_edit(_edit_fields(args))
            print(json.dumps(record.to_dict(), indent=2))
        elif args.cmd == "delete":
            removed = await console.request_delete(args.user_id)
            print(f"[delete] Removed user {removed.id} ({removed.full_name})", file=sys.stderr)
    except AuthError as e:
        print(f"[{args.cmd}] Authentication failed: {e}", file=sys.stderr)
        return EXIT_AUTH
    except DirectoryError as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    return 0


def main(argv: list[str] | None = None) -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Directory user console")
    parser.add_argument("--api-url", default=None, help="Directory API base URL (default: DIRECTORY_API_URL)")

    sub = parser.add_subparsers(dest="cmd")

    sl = sub.add_parser("list")
    sl.add_argument("--query", default="")
    sl.add_argument("--page", type=int, default=1)

    ss = sub.add_parser("show")
    ss.add_argument("user_id")

    se = sub.add_parser("edit")
    se.add_argument("user_id", type=int)
    se.add_argument("--first-name")
    se.add_argument("--last-name")
    se.add_argument("--email")

    sd = sub.add_parser("delete")
    sd.add_argument("user_id", type=int)

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    if args.cmd == "edit" and not _edit_fields(args):
        parser.error("edit requires at least one of --first-name, --last-name, --email")

    try:
        config = load_settings()
    except (ValueError, RuntimeError) as e:
        parser.error(str(e))
    if args.api_url:
        config.api_base_url = args.api_url.rstrip("/")

    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")

    code = asyncio.run(run(args, config))
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
