"""Entry point for the notechat CLI.

Usage:
    notechat chat "What links these notes?" --note a.md --note b.md
    notechat chat "Go on" --session session_...
    notechat continue SESSION_ID
    notechat sessions list|show ID|delete ID
    notechat providers [--check]
    notechat settings show|set KEY VALUE|reset
    notechat analyze note.md --kind tags
"""

import asyncio
import logging

from dotenv import load_dotenv

from notechat.cli.arg_parser import parse_args
from notechat.cli.bootstrap import configure_logging
from notechat.cli.commands import (
    CliContext,
    build_cli_context,
    cmd_analyze,
    cmd_chat,
    cmd_continue,
    cmd_providers,
    cmd_providers_check,
    cmd_sessions_delete,
    cmd_sessions_list,
    cmd_sessions_show,
    cmd_settings_reset,
    cmd_settings_set,
    cmd_settings_show,
)
from notechat.cli.output import print_error
from notechat.core.errors import ConfigError

logger = logging.getLogger(__name__)


def dispatch(args, ctx: CliContext) -> int:
    """Run the selected command and return its exit code."""
    command = args.command

    if command == "chat":
        return asyncio.run(cmd_chat(
            ctx,
            args.message,
            session_id=args.session,
            stream=args.stream,
            note_paths=args.notes,
            notes_dir=args.notes_dir,
        ))
    if command == "continue":
        return asyncio.run(cmd_continue(ctx, args.session))
    if command == "analyze":
        return asyncio.run(cmd_analyze(ctx, args.file, args.kind))
    if command == "providers":
        if args.check:
            return asyncio.run(cmd_providers_check(ctx))
        return cmd_providers(ctx)

    if command == "sessions":
        sub = args.sessions_command or "list"
        if sub == "list":
            return cmd_sessions_list(ctx)
        if sub == "show":
            return cmd_sessions_show(ctx, args.session)
        if sub == "delete":
            return cmd_sessions_delete(ctx, args.session)

    if command == "settings":
        sub = args.settings_command or "show"
        if sub == "show":
            return cmd_settings_show(ctx)
        if sub == "set":
            return cmd_settings_set(ctx, args.key, args.value)
        if sub == "reset":
            return cmd_settings_reset(ctx)

    print("Usage: notechat <command>")
    print("Commands: chat, continue, sessions, providers, settings, analyze")
    return 1


def main(argv: list[str] | None = None) -> None:
    """Entry point for the notechat CLI."""
    load_dotenv()
    args = parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    ctx = build_cli_context(args.store_dir, args.config)
    try:
        exit_code = dispatch(args, ctx)
    except ConfigError as e:
        print_error(e.message)
        exit_code = 1
    except KeyboardInterrupt:
        exit_code = 130
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
