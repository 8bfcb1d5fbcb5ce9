"""Argument parsing for the notechat CLI."""

import argparse
from pathlib import Path

from notechat.analysis.types import AnalysisKind


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="notechat",
        description="Chat with AI models about your notes",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file (default: ~/.notechat/config.json when present)",
    )
    parser.add_argument(
        "--store-dir",
        type=Path,
        help="Directory for saved sessions and settings (default: ~/.notechat/store)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Write debug-level logs",
    )

    subparsers = parser.add_subparsers(dest="command")

    # chat - one exchange
    chat_parser = subparsers.add_parser("chat", help="Send a message")
    chat_parser.add_argument("message", help="Message text")
    chat_parser.add_argument("--session", "-s", help="Session ID to continue")
    stream_group = chat_parser.add_mutually_exclusive_group()
    stream_group.add_argument(
        "--stream", dest="stream", action="store_true", default=None,
        help="Stream the reply",
    )
    stream_group.add_argument(
        "--no-stream", dest="stream", action="store_false",
        help="Wait for the whole reply",
    )
    chat_parser.add_argument(
        "--note", "-n",
        dest="notes",
        action="append",
        type=Path,
        default=[],
        help="Note file to include as context (repeatable; first is the current note)",
    )
    chat_parser.add_argument(
        "--notes-dir",
        type=Path,
        help="Notes folder where approved file operations are applied",
    )

    # continue - resume a stopped reply
    continue_parser = subparsers.add_parser("continue", help="Continue a stopped reply")
    continue_parser.add_argument("session", help="Session ID")

    # sessions
    sessions_parser = subparsers.add_parser("sessions", help="Manage saved sessions")
    sessions_sub = sessions_parser.add_subparsers(dest="sessions_command")
    sessions_sub.add_parser("list", help="List sessions")
    show_parser = sessions_sub.add_parser("show", help="Show a session")
    show_parser.add_argument("session", help="Session ID")
    delete_parser = sessions_sub.add_parser("delete", help="Delete a session")
    delete_parser.add_argument("session", help="Session ID")

    # providers
    providers_parser = subparsers.add_parser("providers", help="List supported providers")
    providers_parser.add_argument(
        "--check", action="store_true", help="Check that each provider is reachable"
    )

    # settings
    settings_parser = subparsers.add_parser("settings", help="Show or change settings")
    settings_sub = settings_parser.add_subparsers(dest="settings_command")
    settings_sub.add_parser("show", help="Show effective settings")
    set_parser = settings_sub.add_parser("set", help="Change a setting")
    set_parser.add_argument("key", help="Dotted key, e.g. budget.history_ratio")
    set_parser.add_argument("value", help="JSON value or plain string")
    settings_sub.add_parser("reset", help="Discard saved settings")

    # analyze
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a note")
    analyze_parser.add_argument("file", type=Path, help="Note file")
    analyze_parser.add_argument(
        "--kind", "-k",
        choices=[kind.value for kind in AnalysisKind],
        default=AnalysisKind.FULL.value,
        help="Analysis to run (default: full)",
    )

    return parser.parse_args(argv)
