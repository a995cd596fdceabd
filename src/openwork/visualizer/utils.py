"""Shared utilities for visualizer views."""

from datetime import datetime
from typing import Optional

from ..plans.models import PlanStepStatus
from ..tasks.models import TaskStatus

STATUS_ICONS = {
	TaskStatus.PENDING.value: "[dim][ ][/dim]",
	TaskStatus.IN_PROGRESS.value: "[yellow][~][/yellow]",
	TaskStatus.COMPLETED.value: "[green]\\[x][/green]",
	TaskStatus.FAILED.value: "[red][!][/red]",
	TaskStatus.CANCELLED.value: "[dim][-][/dim]",
}


def status_icon(status: TaskStatus | PlanStepStatus | str) -> str:
	"""Rich markup checkbox for a task or plan step status."""
	value = getattr(status, "value", status)
	return STATUS_ICONS.get(value, "[ ]")


def format_duration(seconds: float) -> str:
	"""Format a duration for display. e.g. '1.2s', '45ms', '2m 3s'."""
	if seconds < 0.001:
		return "<1ms"
	if seconds < 1.0:
		return f"{seconds * 1000:.0f}ms"
	if seconds < 60.0:
		return f"{seconds:.1f}s"
	minutes = int(seconds // 60)
	secs = seconds % 60
	return f"{minutes}m {secs:.0f}s"


def elapsed(started_at: Optional[datetime], completed_at: Optional[datetime]) -> Optional[str]:
	"""Formatted run time of a task, or None if it never started."""
	if started_at is None:
		return None
	end = completed_at or datetime.now()
	return format_duration(max((end - started_at).total_seconds(), 0.0))


def progress_bar(progress: int, width: int = 20) -> str:
	"""Text bar like '[#####-----] 50%'."""
	progress = max(0, min(100, progress))
	filled = round(progress / 100 * width)
	return f"[{'#' * filled}{'-' * (width - filled)}] {progress}%"
