"""Terminal rendering of diffs, recommendations and review sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lexdiff_core.diff import render_target

if TYPE_CHECKING:
    from lexdiff_core.diff import StatuteDiff
    from lexdiff_core.recommendation import Recommendation
    from lexdiff_core.review import ReviewSession

console = Console()

_SEVERITY_COLOR = {"none": "green", "minor": "blue", "moderate": "cyan", "major": "yellow", "breaking": "red"}
_PRIORITY_COLOR = {"low": "dim", "medium": "blue", "high": "yellow", "critical": "red"}
_STATE_COLOR = {
    "in_progress": "cyan",
    "approved": "green",
    "changes_requested": "yellow",
    "rejected": "red",
    "cancelled": "dim",
}


def print_diff(diff: StatuteDiff) -> None:
    severity = diff.impact.severity.name.lower()
    color = _SEVERITY_COLOR.get(severity, "white")
    console.print(
        f"\n[bold]Statute [cyan]{escape(diff.statute_id)}[/cyan][/bold]  "
        f"severity [{color}]{severity.upper()}[/{color}]  ·  {len(diff.changes)} change(s)"
    )
    if not diff.changes:
        console.print("[green]No changes.[/green]")
        return

    table = Table(show_header=True)
    table.add_column("Type", style="bold")
    table.add_column("Target")
    table.add_column("Description")
    table.add_column("Old", style="dim")
    table.add_column("New")
    for change in diff.changes:
        table.add_row(
            change.change_type.value,
            escape(render_target(change.target)),
            escape(change.description),
            escape(change.old_value or "—"),
            escape(change.new_value or "—"),
        )
    console.print(table)

    flags = [
        name
        for name, on in (
            ("eligibility", diff.impact.affects_eligibility),
            ("outcome", diff.impact.affects_outcome),
            ("discretion", diff.impact.discretion_changed),
        )
        if on
    ]
    if flags:
        console.print(f"Affects: [bold]{', '.join(flags)}[/bold]")
    for note in diff.impact.notes:
        console.print(f"  [dim]- {escape(note)}[/dim]")


def print_recommendations(recommendations: Sequence[Recommendation]) -> None:
    if not recommendations:
        console.print("[green]No recommendations.[/green]")
        return
    console.print(f"\n[bold]{len(recommendations)} recommendation(s)[/bold]\n")
    for rec in recommendations:
        priority = rec.priority.name.lower()
        color = _PRIORITY_COLOR.get(priority, "white")
        console.print(
            f"[{color}]{priority.upper()}[/{color}]  [bold]{escape(rec.title)}[/bold]  "
            f"[dim]({rec.category.value}, confidence {rec.confidence:.0%})[/dim]"
        )
        console.print(f"  {escape(rec.description)}")
        if rec.suggested_action:
            console.print(f"  → {escape(rec.suggested_action)}")
        console.print()


def print_session(session: ReviewSession) -> None:
    state = session.state.value
    color = _STATE_COLOR.get(state, "white")
    console.print(
        f"\n[bold]Review {session.id}[/bold] of [cyan]{escape(session.diff.statute_id)}[/cyan]  "
        f"[{color}]{state.replace('_', ' ').upper()}[/{color}]"
    )

    table = Table(title="Participants", show_header=True)
    table.add_column("User")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Active", justify="center")
    for p in session.participants:
        table.add_row(escape(p.user_id), escape(p.display_name), p.role.value, "yes" if p.is_active else "no")
    console.print(table)

    unresolved = session.unresolved_comments()
    console.print(
        f"{len(session.comments)} comment(s), {len(unresolved)} unresolved · "
        f"{len(session.annotations)} annotation(s)"
    )
    for comment in unresolved:
        anchor = f" [dim]on {escape(comment.target)}[/dim]" if comment.target else ""
        console.print(f"  [bold]{escape(comment.author_id)}[/bold]{anchor}: {escape(comment.content)}")
