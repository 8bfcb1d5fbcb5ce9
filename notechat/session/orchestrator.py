"""Conversation orchestrator: the caller-facing facade of notechat.

One exchange runs:

1. resolve (or lazily create) the session and reserve it for generation
2. compute the context budget for the selected model
3. build a provider for this exchange from the current config
4. assemble budgeted note context and compacted history
5. append and persist the user message
6. optionally run client-side intent detection
7. call the provider, streaming or not
8. materialize and persist the assistant message

Backend failures never raise out of the facade; they come back as
ErrorOutcome. At most one generation runs per session; a second request
for a busy session is rejected with GENERATION_IN_PROGRESS.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Coroutine
from contextlib import aclosing
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, TypeVar

from notechat.config.schema import Config
from notechat.context.budget import ContextBudget, compute_budget
from notechat.context.compaction import compact_history, per_message_budget
from notechat.context.optimizer import fit_search_results, optimize_note, optimize_notes
from notechat.context.token_counter import get_token_counter
from notechat.core.cancel import CancellationToken
from notechat.core.errors import (
    AIError,
    BudgetExhaustedError,
    ConfigError,
    ErrorCode,
    NotechatError,
    ProviderError,
)
from notechat.core.identifiers import generate_id
from notechat.core.types import (
    AIContext,
    ChatOptions,
    Message,
    NoteContext,
    Role,
    StreamChunk,
    Usage,
)
from notechat.intent.detection import (
    DETECTION_OPTIONS,
    build_intent_prompt,
    looks_like_file_request,
)
from notechat.intent.repair import parse_intent_response
from notechat.intent.types import ClarificationNeeded, IntentDetected, ParseFailed, StructuredIntent
from notechat.provider import create_provider
from notechat.provider.catalog import ModelDescriptor, get_descriptor
from notechat.session.outcomes import ChatOutcome, ErrorOutcome, IntentOutcome, MessageOutcome
from notechat.session.types import Session

if TYPE_CHECKING:
    from notechat.analysis.types import Analysis, AnalysisKind
    from notechat.config.schema import ProviderConfig
    from notechat.context.token_counter import TokenCounter
    from notechat.core.interfaces import AsyncProvider, FileOperationExecutor, ProviderFactory
    from notechat.session.store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTINUE_INSTRUCTION = (
    "Your previous reply was interrupted. Continue it exactly where it stopped, "
    "without repeating any text that was already written."
)


def _approved_instruction(intent: StructuredIntent) -> str:
    return (
        f"The user approved the proposed file operations and they have been applied: "
        f"{intent.summary}. Confirm briefly and help with any follow-up."
    )


def _rejected_instruction(intent: StructuredIntent) -> str:
    return (
        f"The user declined the proposed file operations ({intent.summary}). "
        f"Do not perform them; answer the request conversationally."
    )


class _Stopped(Exception):
    """A non-streaming call was cancelled through its token."""


@dataclass
class _PendingIntent:
    intent: StructuredIntent
    note_context: NoteContext | None


@dataclass
class _Exchange:
    session: Session
    provider: AsyncProvider
    history: list[Message]
    context: AIContext
    options: ChatOptions
    token: CancellationToken
    continuing: Message | None = None


class ConversationOrchestrator:
    """Runs chat exchanges against the configured backend and persists them.

    Example:
        orchestrator = ConversationOrchestrator(settings, SessionStore(kv))
        outcome = await orchestrator.send_message("Summarize this note", note_context=ctx)

        async for item in orchestrator.stream_message("Hi", session_id=sid):
            if isinstance(item, StreamChunk):
                print(item.content, end="")
    """

    def __init__(
        self,
        config: Config | Callable[[], Config],
        sessions: SessionStore,
        provider_factory: ProviderFactory = create_provider,
        counter: TokenCounter | None = None,
        executor: FileOperationExecutor | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Config, or a zero-argument callable re-read on every exchange.
            sessions: Session persistence.
            provider_factory: Builds a provider from (provider config, model id).
            counter: Token counter for budgeting and usage estimates.
            executor: Applies approved file-operation intents.
        """
        if isinstance(config, Config):
            fixed = config
            self._config_source: Callable[[], Config] = lambda: fixed
        else:
            self._config_source = config
        self._sessions = sessions
        self._provider_factory = provider_factory
        self._counter = counter or get_token_counter()
        self._executor = executor
        self._active: dict[str, CancellationToken] = {}
        self._pending: dict[str, _PendingIntent] = {}

    # Public API

    async def send_message(
        self,
        text: str,
        session_id: str | None = None,
        note_context: NoteContext | None = None,
        stream: bool | None = None,
    ) -> ChatOutcome:
        """Run one exchange and return its outcome.

        Args:
            text: The user's message.
            session_id: Existing or new session id; a new id is generated if None.
            note_context: Notes and search hits to ground the reply in.
            stream: Use the streaming path. None follows Config.enable_streaming.
        """
        return await self._drain(
            self._run(session_id, note_context, stream, user_text=text)
        )

    async def stream_message(
        self,
        text: str,
        session_id: str | None = None,
        note_context: NoteContext | None = None,
    ) -> AsyncIterator[StreamChunk | ChatOutcome]:
        """Run one streamed exchange.

        Yields content chunks, the terminal chunk, and finally the outcome.
        Closing the iterator early stops the generation and persists the
        partial reply as user-stopped.
        """
        async with aclosing(self._run(session_id, note_context, True, user_text=text)) as items:
            async for item in items:
                yield item

    def cancel(self, session_id: str) -> bool:
        """Stop the active generation for a session. False if none is active."""
        token = self._active.get(session_id)
        if token is None:
            return False
        logger.debug("Cancelling generation for session %s", session_id)
        token.cancel()
        return True

    def is_generating(self, session_id: str) -> bool:
        return session_id in self._active

    def pending_intent(self, session_id: str) -> StructuredIntent | None:
        pending = self._pending.get(session_id)
        return pending.intent if pending else None

    async def resolve_intent(
        self,
        session_id: str,
        approved: bool,
        stream: bool | None = None,
    ) -> ChatOutcome:
        """Approve or reject the pending intent, then answer the original message.

        An approved intent is handed to the executor first. If the executor
        fails, the intent stays pending.
        """
        pending = self._pending.get(session_id)
        if pending is None:
            return self._error(
                session_id, ErrorCode.NO_PENDING_INTENT,
                "No file operations are awaiting approval for this session",
            )
        if session_id in self._active:
            return self._busy(session_id)

        if approved:
            if self._executor is None:
                return self._error(
                    session_id, ErrorCode.CONFIGURATION_MISSING,
                    "No file operation executor is configured",
                )
            try:
                await self._executor.apply(pending.intent)
            except Exception as e:
                logger.exception("File operation executor failed")
                return self._error(session_id, ErrorCode.CHAT_ERROR, f"File operations failed: {e}")
            instruction = _approved_instruction(pending.intent)
        else:
            instruction = _rejected_instruction(pending.intent)

        del self._pending[session_id]
        logger.info(
            "Intent %s for session %s (%d operations)",
            "approved" if approved else "rejected", session_id, len(pending.intent.operations),
        )
        return await self._drain(
            self._run(session_id, pending.note_context, stream, extra=(instruction,))
        )

    async def continue_message(
        self,
        session_id: str,
        stream: bool | None = None,
    ) -> ChatOutcome:
        """Resume a reply the user stopped, appending to the stored message."""
        return await self._drain(
            self._run(session_id, None, stream, extra=(CONTINUE_INSTRUCTION,), continuing=True)
        )

    def list_sessions(self) -> list[Session]:
        return self._sessions.list()

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def delete_session(self, session_id: str) -> bool:
        """Delete a session, stopping any generation still running for it."""
        self.cancel(session_id)
        self._pending.pop(session_id, None)
        return self._sessions.delete(session_id)

    async def analyze(self, content: str, kind: AnalysisKind) -> Analysis | ErrorOutcome:
        """Analyze note content with the configured backend."""
        try:
            config = self._config_source()
        except ConfigError as e:
            return ErrorOutcome(None, e.to_ai_error())
        provider_config, _ = self._resolve_model(config)
        if provider_config is None:
            return self._error(
                None, ErrorCode.CONFIGURATION_MISSING, f"Unknown provider: {config.provider}"
            )
        try:
            provider = self._provider_factory(provider_config, config.model)
        except NotechatError as e:
            return ErrorOutcome(None, e.to_ai_error(provider_config.type))
        try:
            return await provider.analyze(content, kind)
        except ProviderError as e:
            logger.warning("Analysis failed: %s", e.message)
            return ErrorOutcome(None, e.to_ai_error(provider.provider_id))
        finally:
            await provider.aclose()

    # Exchange pipeline

    async def _drain(self, items: AsyncIterator[StreamChunk | ChatOutcome]) -> ChatOutcome:
        outcome: ChatOutcome | None = None
        async with aclosing(items) as iterator:
            async for item in iterator:
                if not isinstance(item, StreamChunk):
                    outcome = item
        assert outcome is not None
        return outcome

    async def _run(
        self,
        session_id: str | None,
        note_context: NoteContext | None,
        stream: bool | None,
        user_text: str | None = None,
        extra: tuple[str, ...] = (),
        continuing: bool = False,
    ) -> AsyncIterator[StreamChunk | ChatOutcome]:
        sid = session_id or generate_id("session")
        if sid in self._active:
            yield self._busy(sid)
            return

        token = CancellationToken()
        self._active[sid] = token
        provider: AsyncProvider | None = None
        try:
            try:
                config = self._config_source()
            except ConfigError as e:
                yield ErrorOutcome(sid, e.to_ai_error())
                return
            use_stream = config.enable_streaming if stream is None else stream

            session = self._sessions.get(sid)
            if session is None:
                if user_text is None:
                    yield self._error(sid, ErrorCode.SESSION_NOT_FOUND, f"Session not found: {sid}")
                    return
                session = Session(id=sid)
            if user_text is not None:
                # A new message supersedes an intent that was never resolved
                self._pending.pop(sid, None)

            target: Message | None = None
            if continuing:
                target = session.last_message()
                if target is None or target.role != Role.ASSISTANT or not target.stopped_by_user:
                    yield self._error(
                        sid, ErrorCode.CHAT_ERROR,
                        "Nothing to continue: the last reply was not stopped",
                    )
                    return

            provider_config, model = self._resolve_model(config)
            if provider_config is None or model is None:
                yield self._error(
                    sid, ErrorCode.CONFIGURATION_MISSING,
                    f"Unknown provider: {config.provider}",
                )
                return

            budget = compute_budget(
                model.context_window,
                config.max_tokens,
                config.budget.history_ratio,
                config.budget.search_ratio,
            )
            if budget.exhausted:
                error = BudgetExhaustedError(
                    f"max_tokens ({config.max_tokens}) leaves no input room in "
                    f"{model.id}'s {model.context_window}-token context window"
                )
                yield ErrorOutcome(sid, error.to_ai_error(provider_config.type))
                return

            try:
                provider = self._provider_factory(provider_config, config.model)
            except NotechatError as e:
                yield ErrorOutcome(sid, e.to_ai_error(provider_config.type))
                return

            history = self._history(session, budget, config)
            if user_text is not None:
                user_message = Message(
                    id=generate_id("msg"),
                    role=Role.USER,
                    content=user_text,
                    token_count=self._counter.count(user_text),
                )
                session.append(user_message)
                history.append(user_message)
                self._sessions.upsert(session)

            exchange = _Exchange(
                session=session,
                provider=provider,
                history=history,
                context=self._build_context(note_context, budget, config, extra),
                options=ChatOptions(
                    model_id=config.model,
                    temperature=config.temperature,
                    max_tokens=config.max_tokens,
                    stream=use_stream,
                ),
                token=token,
                continuing=target,
            )

            if user_text is not None and self._wants_intent_pass(config, provider):
                detected = await self._detect_intent(exchange, user_text, note_context)
                if detected is not None:
                    yield detected
                    return

            if use_stream:
                async with aclosing(self._stream_reply(exchange)) as items:
                    async for item in items:
                        yield item
            else:
                yield await self._complete_reply(exchange)
        finally:
            if self._active.get(sid) is token:
                del self._active[sid]
            if provider is not None:
                await provider.aclose()

    def _resolve_model(self, config: Config) -> tuple[ProviderConfig | None, ModelDescriptor | None]:
        try:
            provider_config = config.get_provider_config()
        except KeyError:
            return None, None
        descriptor = get_descriptor(provider_config.type)
        return provider_config, descriptor.resolve_model(config.model, provider_config.models)

    def _history(self, session: Session, budget: ContextBudget, config: Config) -> list[Message]:
        """Prior messages, compacted into the history budget."""
        prior = [
            m for m in session.messages
            if not (m.role == Role.ASSISTANT and not m.content.strip())
        ]
        keep = config.budget.history_keep_count
        return compact_history(
            prior, keep, per_message_budget(budget.conversation_history, keep), self._counter
        )

    def _build_context(
        self,
        note_context: NoteContext | None,
        budget: ContextBudget,
        config: Config,
        extra: tuple[str, ...],
    ) -> AIContext:
        """Fit the caller's notes and search hits into their budget shares.

        The current note and related notes split the current-note share;
        the current note takes half when related notes are present.
        """
        if note_context is None or not config.enable_context:
            return AIContext(extra_instructions=extra)

        related = list(note_context.related_notes[: config.max_context_notes])
        current = None
        related_budget = budget.current_note
        if note_context.current_note is not None:
            share = budget.current_note // 2 if related else budget.current_note
            current = optimize_note(note_context.current_note, share, counter=self._counter)
            related_budget -= share

        return AIContext(
            current_note=current,
            related_notes=tuple(optimize_notes(related, related_budget, counter=self._counter)),
            search_results=tuple(
                fit_search_results(
                    list(note_context.search_results), budget.search_results, self._counter
                )
            ),
            extra_instructions=extra,
        )

    @staticmethod
    def _wants_intent_pass(config: Config, provider: AsyncProvider) -> bool:
        if config.intent_detection is not None:
            return config.intent_detection
        return provider.describe().intent_detection

    async def _detect_intent(
        self,
        exchange: _Exchange,
        text: str,
        note_context: NoteContext | None,
    ) -> ChatOutcome | None:
        """Run the intent sub-call. None means continue with ordinary chat."""
        if not looks_like_file_request(text):
            return None

        names: list[str] = []
        if note_context is not None:
            if note_context.current_note is not None:
                names.append(note_context.current_note.title)
            names.extend(note.title for note in note_context.related_notes)

        prompt = build_intent_prompt(text, names)
        try:
            raw = await self._cancellable(
                exchange.provider.complete(prompt, DETECTION_OPTIONS), exchange.token
            )
        except _Stopped:
            return self._settle(exchange, "", None, stopped=True)
        except ProviderError as e:
            logger.warning("Intent detection failed, continuing with chat: %s", e.message)
            return None

        result = parse_intent_response(raw)
        if isinstance(result, IntentDetected):
            session_id = exchange.session.id
            self._pending[session_id] = _PendingIntent(result.intent, note_context)
            logger.info(
                "Detected %d file operations for session %s",
                len(result.intent.operations), session_id,
            )
            return IntentOutcome(session_id, result.intent)
        if isinstance(result, ClarificationNeeded):
            return self._settle(exchange, result.question, None, stopped=False)
        if isinstance(result, ParseFailed):
            logger.debug("Intent response unparseable (%s), continuing with chat", result.reason)
        return None

    async def _complete_reply(self, exchange: _Exchange) -> ChatOutcome:
        try:
            response = await self._cancellable(
                exchange.provider.chat(exchange.history, exchange.context, exchange.options),
                exchange.token,
            )
        except _Stopped:
            return self._settle(exchange, "", None, stopped=True)
        except ProviderError as e:
            return self._failed(exchange, e)
        return self._settle(exchange, response.content, response.usage, stopped=False)

    async def _stream_reply(
        self, exchange: _Exchange
    ) -> AsyncIterator[StreamChunk | ChatOutcome]:
        parts: list[str] = []
        terminal: StreamChunk | None = None
        chunks = exchange.provider.stream(
            exchange.history, exchange.context, exchange.options, exchange.token
        )
        try:
            async with aclosing(chunks) as stream:
                async for chunk in stream:
                    if chunk.done:
                        terminal = chunk
                        break
                    parts.append(chunk.content)
                    yield chunk
        except ProviderError as e:
            yield self._failed(exchange, e)
            return
        except (GeneratorExit, asyncio.CancelledError):
            # Consumer stopped iterating or the task was cancelled
            self._settle(exchange, "".join(parts), None, stopped=True)
            raise

        outcome = self._settle(
            exchange,
            "".join(parts),
            terminal.usage if terminal is not None else None,
            stopped=terminal is None,
        )
        if terminal is not None:
            yield terminal
        yield outcome

    @staticmethod
    async def _cancellable(coro: Coroutine[Any, Any, T], token: CancellationToken) -> T:
        """Await coro, raising _Stopped if the token cancels it."""
        task = asyncio.ensure_future(coro)
        token.on_cancel(task.cancel)
        try:
            return await task
        except asyncio.CancelledError:
            if token.is_cancelled and task.cancelled():
                raise _Stopped() from None
            raise

    def _settle(
        self,
        exchange: _Exchange,
        content: str,
        usage_reported: Usage | None,
        stopped: bool,
    ) -> MessageOutcome:
        """Materialize the assistant message, update totals and persist."""
        usage = usage_reported or exchange.provider.estimate_usage(
            self._counter.count_messages(exchange.history), self._counter.count(content)
        )
        session = exchange.session
        target = exchange.continuing

        if target is not None:
            message = replace(
                target.with_continuation(content),
                token_count=(target.token_count or 0) + usage.completion_tokens,
                stopped_by_user=stopped,
            )
            session.replace_message(message)
        else:
            message = Message(
                id=generate_id("msg"),
                role=Role.ASSISTANT,
                content=content,
                token_count=usage.completion_tokens,
                model_id=exchange.options.model_id,
                context_snapshot=exchange.context.snapshot(),
                stopped_by_user=stopped,
            )
            session.append(message)

        session.record_usage(usage)
        if not stopped and not session.has_title:
            first = next((m for m in session.messages if m.role == Role.USER), None)
            if first is not None:
                session.derive_title(first.content)
        self._sessions.upsert(session)

        logger.info(
            "Exchange %s for session %s: %d tokens, $%.6f",
            "stopped" if stopped else "complete",
            session.id, usage.total_tokens, usage.estimated_cost,
        )
        return MessageOutcome(session.id, message, usage, stopped)

    def _failed(self, exchange: _Exchange, error: ProviderError) -> ErrorOutcome:
        logger.warning("Exchange failed for session %s: %s", exchange.session.id, error.message)
        return ErrorOutcome(
            exchange.session.id, error.to_ai_error(exchange.provider.provider_id)
        )

    @staticmethod
    def _error(
        session_id: str | None,
        code: ErrorCode,
        message: str,
        provider_id: str | None = None,
    ) -> ErrorOutcome:
        return ErrorOutcome(session_id, AIError(code=code, message=message, provider_id=provider_id))

    def _busy(self, session_id: str) -> ErrorOutcome:
        return self._error(
            session_id, ErrorCode.GENERATION_IN_PROGRESS,
            "A reply is still being generated for this session",
        )
