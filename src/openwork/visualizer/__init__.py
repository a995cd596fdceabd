"""Visualizer package - Rich terminal views for task progress and plans."""

from .task_progress import (
	render_clarification,
	render_execution_plan,
	render_progress_summary,
	render_task_tree,
)
from .utils import format_duration, status_icon

__all__ = [
	"format_duration",
	"render_clarification",
	"render_execution_plan",
	"render_progress_summary",
	"render_task_tree",
	"status_icon",
]
