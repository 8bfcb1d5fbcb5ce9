"""CLI command implementations.

Each command returns a process exit code. Commands share a CliContext that
wires the key-value store, settings and sessions together.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.prompt import Confirm

from notechat.analysis.types import AnalysisKind
from notechat.cli.executor import NotesDirectoryExecutor
from notechat.cli.output import (
    console,
    print_ai_error,
    print_analysis,
    print_error,
    print_info,
    print_intent,
    print_providers,
    print_session,
    print_sessions,
    print_usage,
)
from notechat.config.loader import load_config
from notechat.config.schema import Config
from notechat.config.store import SettingsStore, parse_setting_value
from notechat.core.constants import get_store_dir
from notechat.core.errors import ConfigError, NotechatError
from notechat.core.identifiers import generate_id
from notechat.core.types import ConnectionStatus, NoteContext, NoteExcerpt, StreamChunk
from notechat.provider import create_provider
from notechat.provider.catalog import ProviderDescriptor, get_descriptor
from notechat.session.orchestrator import ConversationOrchestrator
from notechat.session.outcomes import ChatOutcome, ErrorOutcome, IntentOutcome, MessageOutcome
from notechat.session.storage import JsonFileStore, KeyValueStore
from notechat.session.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class CliContext:
    settings: SettingsStore
    sessions: SessionStore
    provider_factory: Any = create_provider

    def orchestrator(
        self, executor: NotesDirectoryExecutor | None = None
    ) -> ConversationOrchestrator:
        return ConversationOrchestrator(
            self.settings,
            self.sessions,
            provider_factory=self.provider_factory,
            executor=executor,
        )


def build_cli_context(
    store_dir: Path | None = None,
    config_path: Path | None = None,
    kv: KeyValueStore | None = None,
) -> CliContext:
    """Wire stores for the CLI. Saved settings layer over the config file."""
    kv = kv or JsonFileStore(store_dir or get_store_dir())
    return CliContext(
        settings=SettingsStore(kv, defaults=lambda: load_config(config_path)),
        sessions=SessionStore(kv),
    )


def load_note_context(paths: list[Path]) -> NoteContext | None:
    """Read note files; the first is the current note, the rest are related."""
    if not paths:
        return None
    notes = [
        NoteExcerpt(id=str(path), title=path.stem, content=path.read_text(encoding="utf-8"))
        for path in paths
    ]
    return NoteContext(current_note=notes[0], related_notes=tuple(notes[1:]))


@contextmanager
def interrupt_cancels(orchestrator: ConversationOrchestrator, session_id: str) -> Iterator[None]:
    """Route Ctrl+C to the session's cancellation instead of killing the process."""
    loop = asyncio.get_running_loop()
    installed = True
    try:
        loop.add_signal_handler(signal.SIGINT, orchestrator.cancel, session_id)
    except NotImplementedError:
        # Windows event loops do not support signal handlers
        installed = False
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def report_outcome(outcome: ChatOutcome, streamed: bool = False) -> int:
    if isinstance(outcome, ErrorOutcome):
        print_ai_error(outcome.error)
        return 1
    if isinstance(outcome, MessageOutcome):
        if not streamed:
            console.print(outcome.message.content, highlight=False, markup=False)
        print_usage(outcome.usage, outcome.stopped)
        print_info(f"session {outcome.session_id}")
        return 0
    print_intent(outcome.intent)
    return 0


async def _exchange(
    orchestrator: ConversationOrchestrator,
    message: str,
    session_id: str,
    note_context: NoteContext | None,
    stream: bool,
) -> tuple[ChatOutcome, bool]:
    if not stream:
        return await orchestrator.send_message(message, session_id, note_context, stream=False), False

    outcome: ChatOutcome | None = None
    streamed = False
    async for item in orchestrator.stream_message(message, session_id, note_context):
        if isinstance(item, StreamChunk):
            if item.content:
                console.print(item.content, end="", highlight=False, markup=False)
                streamed = True
        else:
            outcome = item
    if streamed:
        console.print()
    assert outcome is not None
    return outcome, streamed


async def cmd_chat(
    ctx: CliContext,
    message: str,
    session_id: str | None = None,
    stream: bool | None = None,
    note_paths: list[Path] | None = None,
    notes_dir: Path | None = None,
    confirm: Any = None,
) -> int:
    """Send one message, asking for approval if file operations are proposed."""
    try:
        note_context = load_note_context(note_paths or [])
    except OSError as e:
        print_error(f"Cannot read note: {e}")
        return 1

    executor = NotesDirectoryExecutor(notes_dir) if notes_dir else None
    orchestrator = ctx.orchestrator(executor)
    # Known up front so Ctrl+C can cancel a brand-new session
    sid = session_id or generate_id("session")
    use_stream = ctx.settings.load().enable_streaming if stream is None else stream

    with interrupt_cancels(orchestrator, sid):
        outcome, streamed = await _exchange(orchestrator, message, sid, note_context, use_stream)

    if isinstance(outcome, IntentOutcome):
        print_intent(outcome.intent)
        if executor is None:
            print_info("No --notes-dir given; approving will fail to apply changes")
        ask = confirm or (lambda: Confirm.ask("Apply these changes?", default=False, console=console))
        approved = bool(ask())
        with interrupt_cancels(orchestrator, sid):
            outcome = await orchestrator.resolve_intent(sid, approved, stream=use_stream)
        streamed = False

    return report_outcome(outcome, streamed)


async def cmd_continue(ctx: CliContext, session_id: str) -> int:
    orchestrator = ctx.orchestrator()
    with interrupt_cancels(orchestrator, session_id):
        outcome = await orchestrator.continue_message(session_id)
    return report_outcome(outcome)


def cmd_sessions_list(ctx: CliContext) -> int:
    print_sessions(ctx.sessions.list())
    return 0


def cmd_sessions_show(ctx: CliContext, session_id: str) -> int:
    session = ctx.sessions.get(session_id)
    if session is None:
        print_error(f"Session not found: {session_id}")
        return 1
    print_session(session)
    return 0


def cmd_sessions_delete(ctx: CliContext, session_id: str) -> int:
    if not ctx.sessions.delete(session_id):
        print_error(f"Session not found: {session_id}")
        return 1
    print_info(f"Deleted {session_id}")
    return 0


def _provider_entries(config: Config) -> list[tuple[str, ProviderDescriptor, bool]]:
    entries = []
    for name in config.list_providers():
        provider_config = config.get_provider_config(name)
        has_key = bool(
            provider_config.api_key
            or (provider_config.api_key_env and os.environ.get(provider_config.api_key_env))
        )
        entries.append((name, get_descriptor(provider_config.type), has_key))
    return entries


def cmd_providers(ctx: CliContext) -> int:
    config = ctx.settings.load()
    print_providers(_provider_entries(config), config.provider)
    return 0


async def cmd_providers_check(ctx: CliContext) -> int:
    """Providers table plus a live connection check of each one.

    Returns 1 if the selected provider cannot be reached.
    """
    config = ctx.settings.load()
    entries = _provider_entries(config)
    statuses: dict[str, ConnectionStatus | str] = {}
    for name, descriptor, _ in entries:
        provider_config = config.get_provider_config(name)
        if name == config.provider:
            model_id = config.model
        else:
            model_id = descriptor.models[0].id if descriptor.models else ""
        try:
            provider = ctx.provider_factory(provider_config, model_id)
        except NotechatError as e:
            statuses[name] = e.message
            continue
        try:
            statuses[name] = await provider.check_connection()
        finally:
            await provider.aclose()
    print_providers(entries, config.provider, statuses)
    selected = statuses.get(config.provider)
    return 0 if isinstance(selected, ConnectionStatus) and selected.connected else 1


def _masked_settings(ctx: CliContext) -> dict[str, Any]:
    data = ctx.settings.load().model_dump(mode="json")
    for provider in data.get("providers", {}).values():
        if provider.get("api_key"):
            provider["api_key"] = "***"
    return data


def cmd_settings_show(ctx: CliContext) -> int:
    console.print_json(json.dumps(_masked_settings(ctx)))
    return 0


def dotted_to_nested(key: str, value: Any) -> dict[str, Any]:
    """Turn ``"a.b.c", v`` into ``{"a": {"b": {"c": v}}}``."""
    parts = [part for part in key.split(".") if part]
    if not parts:
        raise ValueError("Setting key cannot be empty")
    nested: dict[str, Any] = {parts[-1]: value}
    for part in reversed(parts[:-1]):
        nested = {part: nested}
    return nested


def cmd_settings_set(ctx: CliContext, key: str, raw_value: str) -> int:
    value = parse_setting_value(raw_value)
    try:
        ctx.settings.update(dotted_to_nested(key, value))
    except (ConfigError, ValueError) as e:
        print_error(str(e))
        return 1
    print_info(f"{key} = {json.dumps(value)}")
    return 0


def cmd_settings_reset(ctx: CliContext) -> int:
    ctx.settings.reset()
    print_info("Settings reset to defaults")
    return 0


async def cmd_analyze(ctx: CliContext, path: Path, kind: str) -> int:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        print_error(f"Cannot read note: {e}")
        return 1
    result = await ctx.orchestrator().analyze(content, AnalysisKind(kind))
    if isinstance(result, ErrorOutcome):
        print_ai_error(result.error)
        return 1
    print_analysis(result)
    return 0
