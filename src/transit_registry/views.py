"""Rich views for registry status, schedule versions and audit history."""

import json
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .schedules.models import LedgerEvent, ScheduleVersion, VersionStatus

STATUS_STYLES = {
	VersionStatus.DRAFT: "dim",
	VersionStatus.APPROVED: "yellow",
	VersionStatus.ACTIVE: "green",
	VersionStatus.REJECTED: "red",
	VersionStatus.SUPERSEDED: "dim",
}


def format_date(value: Optional[int]) -> str:
	"""Format a YYYYMMDD integer as YYYY-MM-DD."""
	if not value:
		return "-"
	text = str(value)
	return f"{text[:4]}-{text[4:6]}-{text[6:8]}"


def truncate_payload(payload: dict, max_len: int = 60) -> str:
	"""Shorten an event payload for table display."""
	text = json.dumps(payload, sort_keys=True)
	if len(text) <= max_len:
		return text
	return text[:max_len - 3] + "..."


def render_status(
	counts: dict[str, int],
	admin: Optional[str],
	active_version: Optional[ScheduleVersion],
	console: Optional[Console] = None,
) -> None:
	"""Render a summary panel for the registry."""
	console = console or Console()

	lines = []
	lines.append(f"[bold]Admin:[/bold] {admin or '[red]not set[/red]'}")
	if active_version:
		lines.append(
			f"[bold]Active version:[/bold] {active_version.id} {active_version.name} "
			f"({format_date(active_version.effective_date)} to {format_date(active_version.expiry_date)})"
		)
	else:
		lines.append("[bold]Active version:[/bold] [dim]none[/dim]")
	lines.append("")
	for table, count in counts.items():
		lines.append(f"[bold]{table}:[/bold] {count}")

	console.print(Panel("\n".join(lines), title="Transit Registry"))


def render_versions(versions: list[ScheduleVersion], console: Optional[Console] = None) -> None:
	"""Render a table of schedule versions."""
	console = console or Console()

	if not versions:
		console.print("[dim]No schedule versions recorded yet.[/dim]")
		return

	table = Table(title="Schedule Versions")
	table.add_column("ID", justify="right")
	table.add_column("Name", style="cyan")
	table.add_column("Effective")
	table.add_column("Expiry")
	table.add_column("Status")
	table.add_column("Created By")
	table.add_column("Approved By")

	for v in versions:
		style = STATUS_STYLES.get(v.status, "")
		table.add_row(
			str(v.id),
			v.name,
			format_date(v.effective_date),
			format_date(v.expiry_date),
			f"[{style}]{v.status.value}[/{style}]" if style else v.status.value,
			v.created_by,
			v.approved_by or "-",
		)

	console.print(table)


def render_history(events: list[LedgerEvent], console: Optional[Console] = None) -> None:
	"""Render the audit trail of one entity."""
	console = console or Console()

	if not events:
		console.print("[dim]No history recorded for this entity.[/dim]")
		return

	first = events[0]
	table = Table(title=f"History: {first.entity} {first.entity_key}")
	table.add_column("#", justify="right")
	table.add_column("Recorded")
	table.add_column("Action", style="cyan")
	table.add_column("Actor")
	table.add_column("Details")

	for event in events:
		table.add_row(
			str(event.id),
			event.recorded_at[:19],
			event.action,
			event.actor,
			truncate_payload(event.payload),
		)

	console.print(table)
