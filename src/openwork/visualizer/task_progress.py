"""Rich views for task trees, plans and plan-mode prompts."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..orchestrator.plan_mode import ClarificationQuestion
from ..plans.models import ExecutionPlan
from ..tasks.models import TaskTree
from .utils import elapsed, progress_bar, status_icon


def render_task_tree(tree: TaskTree, console: Optional[Console] = None) -> None:
	"""Render a task tree with status, progress and timing."""
	console = console or Console()
	root = tree.root
	if root is None:
		console.print("[dim]No tasks.[/dim]")
		return

	def label(task_id: str) -> str:
		task = tree.get(task_id)
		text = f"{status_icon(task.status)} {escape(task.description)}  [dim]{task.progress}%[/dim]"
		took = elapsed(task.started_at, task.completed_at)
		if took:
			text += f" [dim]({took})[/dim]"
		if task.error:
			text += f"\n[red]{escape(task.error)}[/red]"
		return text

	view = Tree(f"[bold]{label(root.id)}[/bold]")
	branches = {root.id: view}
	for task in tree.descendants(root.id):
		branches[task.id] = branches[task.parent_id].add(label(task.id))

	console.print(view)


def render_progress_summary(summary: dict, console: Optional[Console] = None) -> None:
	"""Render the tracker summary (counts by status plus overall progress)."""
	console = console or Console()

	table = Table(show_header=False, box=None)
	table.add_column("Key", style="bold")
	table.add_column("Value")
	table.add_row("Progress", Text(progress_bar(summary.get("overall_progress", 0))))
	for key in ("total", "completed", "in_progress", "pending", "failed", "cancelled"):
		table.add_row(key.replace("_", " ").title(), str(summary.get(key, 0)))

	console.print(Panel(table, title="Progress", border_style="cyan"))


def render_execution_plan(plan: ExecutionPlan, console: Optional[Console] = None) -> None:
	"""Render an execution plan as a tree of steps."""
	console = console or Console()

	progress = plan.get_progress()
	view = Tree(
		f"[bold]{escape(plan.goal)}[/bold]  "
		f"[dim]({progress['completed_steps']}/{progress['total_steps']} steps, "
		f"{plan.estimated_complexity.value} complexity)[/dim]"
	)
	for step in plan.steps:
		line = f"{status_icon(step.status)} {escape(step.description)}"
		if step.tools_needed:
			line += f" [dim](tools: {', '.join(step.tools_needed)})[/dim]"
		branch = view.add(line)
		if step.error:
			branch.add(f"[red]{escape(step.error)}[/red]")

	if plan.required_approvals:
		approvals = view.add("[bold]Required approvals[/bold]")
		for approval in plan.required_approvals:
			approvals.add(escape(approval))

	console.print(view)


def render_clarification(question: ClarificationQuestion, console: Optional[Console] = None) -> None:
	"""Render a clarification question with its options."""
	console = console or Console()

	lines = [f"[bold]{escape(question.question)}[/bold]", ""]
	for index, option in enumerate(question.options, start=1):
		key = option.shortcut or str(index)
		line = f"  [cyan]{escape(key)}[/cyan]  {escape(option.label)}"
		if option.description:
			line += f" [dim]- {escape(option.description)}[/dim]"
		lines.append(line)

	hints = []
	if question.allow_custom:
		hints.append("type your own answer")
	if question.allow_skip:
		hints.append("'skip' to skip")
	if hints:
		lines.append("")
		lines.append(f"[dim]Or {', or '.join(hints)}[/dim]")

	console.print(Panel("\n".join(lines), title="Clarification", border_style="yellow"))
