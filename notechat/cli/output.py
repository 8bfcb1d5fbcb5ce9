"""Rich-based output utilities for the notechat CLI."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from notechat.core.types import Role
from notechat.core.utils import truncate

if TYPE_CHECKING:
    from notechat.analysis.types import Analysis
    from notechat.core.errors import AIError
    from notechat.core.types import ConnectionStatus, Usage
    from notechat.intent.types import StructuredIntent
    from notechat.provider.catalog import ProviderDescriptor
    from notechat.session.types import Session

# Shared console instance
console = Console()

_ROLE_STYLES = {
    Role.USER: "bold cyan",
    Role.ASSISTANT: "bold green",
    Role.SYSTEM: "bold magenta",
}


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[dim]{message}[/dim]")


def print_ai_error(error: AIError) -> None:
    source = f" ({error.provider_id})" if error.provider_id else ""
    print_error(f"{error.code.value}{source}: {error.message}")


def print_usage(usage: Usage, stopped: bool = False) -> None:
    suffix = " [yellow]stopped[/yellow]" if stopped else ""
    console.print(
        f"[dim]{usage.total_tokens} tokens · ${usage.estimated_cost:.4f}[/dim]{suffix}"
    )


def print_intent(intent: StructuredIntent) -> None:
    """Show proposed file operations for approval."""
    console.print(f"[bold]{intent.summary}[/bold]")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Operation")
    table.add_column("Path")
    table.add_column("Reason")
    for op in intent.operations:
        table.add_row(op.type, op.path, op.reason)
    console.print(table)


def print_sessions(sessions: list[Session]) -> None:
    if not sessions:
        print_info("No sessions")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Messages", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Updated")
    for session in sessions:
        table.add_row(
            session.id,
            session.title,
            str(len(session.messages)),
            str(session.total_tokens),
            f"${session.total_cost:.4f}",
            session.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def print_session(session: Session) -> None:
    console.print(f"[bold]{session.title}[/bold] [dim]({session.id})[/dim]")
    for message in session.messages:
        style = _ROLE_STYLES.get(message.role, "bold")
        marker = " [yellow](stopped)[/yellow]" if message.stopped_by_user else ""
        console.print(f"\n[{style}]{message.role.value}[/{style}]{marker}")
        console.print(message.content, highlight=False, markup=False)
    console.print()
    print_info(f"{session.total_tokens} tokens · ${session.total_cost:.4f}")


def print_providers(
    entries: list[tuple[str, ProviderDescriptor, bool]],
    selected: str,
    statuses: dict[str, ConnectionStatus | str] | None = None,
) -> None:
    """Table of providers as (configured name, catalog entry, key available).

    With statuses, a Status column shows each connection check; a string
    status means the provider could not be built at all.
    """
    table = Table(show_header=True, header_style="bold")
    table.add_column("Provider", style="cyan")
    table.add_column("Name")
    table.add_column("Key")
    table.add_column("Intent pass")
    table.add_column("Models")
    if statuses is not None:
        table.add_column("Status")
    for provider_name, descriptor, has_key in entries:
        if not descriptor.api_key_required:
            key = "[dim]not needed[/dim]"
        elif has_key:
            key = "[green]set[/green]"
        else:
            key = "[red]missing[/red]"
        name = f"{descriptor.name} *" if provider_name == selected else descriptor.name
        models = ", ".join(m.id for m in descriptor.models) or "[dim]any[/dim]"
        row = [
            provider_name,
            name,
            key,
            "yes" if descriptor.intent_detection else "no",
            truncate(models, 60),
        ]
        if statuses is not None:
            row.append(_status_cell(statuses.get(provider_name)))
        table.add_row(*row)
    console.print(table)
    if statuses:
        for provider_name, status in statuses.items():
            if isinstance(status, str):
                print_error(f"{provider_name}: {status}")
            elif not status.connected:
                print_error(f"{provider_name}: {status.error}")


def _status_cell(status: ConnectionStatus | str | None) -> str:
    if status is None:
        return "[dim]-[/dim]"
    if isinstance(status, str):
        return "[yellow]skipped[/yellow]"
    if status.connected:
        return f"[green]ok[/green] ({len(status.models)} models)"
    return "[red]failed[/red]"


def print_analysis(analysis: Analysis) -> None:
    for key, value in asdict(analysis).items():
        if key == "raw" or value in ("", (), []):
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(item) for item in value)
        console.print(f"[bold]{key.replace('_', ' ').title()}:[/bold] {value}", highlight=False)
