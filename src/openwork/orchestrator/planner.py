"""
Task Planner - turns a natural-language request into a tree of subtasks.

The planner never talks to a provider itself. The orchestrator sends the
planning prompt, hands the response back to parse_plan_response, and
builds the task tree from the resulting plan items.

Parsing never fails: output without a usable `tasks` array degrades to a
single medium-complexity item.
"""

import logging
from typing import Iterable, Optional

from ..errors import PlanParseError
from ..plans.models import Complexity, PlanItem
from ..plans.parsing import as_complexity, as_str_list, extract_json_object
from ..tasks.models import Task, TaskStatus, TaskTree
from ..tools.base import Tool
from .progress import round_half_up

logger = logging.getLogger(__name__)

FALLBACK_DESCRIPTION = "Complete the requested task"

COMPLEXITY_WEIGHTS = {
	Complexity.LOW.value: 1,
	Complexity.MEDIUM.value: 2,
	Complexity.HIGH.value: 3,
}

TASK_PLANNING_PROMPT = """You are an AI task planner. Your job is to break down user requests into actionable subtasks.

For each user request, analyze what needs to be done and create a structured task plan.

Guidelines:
1. Break complex tasks into 3-7 manageable subtasks
2. Each subtask should be independently completable
3. Order subtasks logically (dependencies first)
4. Be specific about what each subtask accomplishes
5. Consider what tools/resources are needed

Return your plan as JSON with the following structure:
{
  "tasks": [
    {
      "description": "Clear description of what to do",
      "dependencies": [],
      "estimatedComplexity": "low" | "medium" | "high",
      "requiredTools": ["tool_name"]
    }
  ]
}"""


class TaskPlanner:
	"""Breaks requests into subtasks and answers questions about task trees."""

	def __init__(self, tools: Optional[Iterable[Tool]] = None):
		self._tools: dict[str, Tool] = {t.name: t for t in tools or []}

	def register_tool(self, tool: Tool) -> None:
		self._tools[tool.name] = tool

	def get_tool_descriptions(self) -> str:
		return "\n".join(f"- {t.name}: {t.description}" for t in self._tools.values())

	def get_planning_prompt(self) -> str:
		"""Planning instructions followed by the registered tool catalogue."""
		tool_list = self.get_tool_descriptions() or "No tools registered yet."
		return f"{TASK_PLANNING_PROMPT}\n\nAvailable tools:\n{tool_list}"

	# -- Parsing --

	def parse_plan_response(self, response: str, request: Optional[str] = None) -> list[PlanItem]:
		"""
		Extract plan items from a provider response.

		Args:
			response: Free text expected to contain {"tasks": [...]}
			request: The original request; used as the fallback item's
				description so a degraded plan still does the user's task

		Returns:
			At least one PlanItem
		"""
		try:
			data = extract_json_object(response)
			if data is None:
				raise PlanParseError("No JSON found in response")

			raw_tasks = data.get("tasks")
			if not isinstance(raw_tasks, list) or not raw_tasks:
				raise PlanParseError("Invalid task plan structure")

			items = []
			for index, raw in enumerate(raw_tasks):
				if not isinstance(raw, dict) or not raw.get("description"):
					raise PlanParseError(f"Task {index + 1} has no description")
				items.append(PlanItem(
					description=str(raw["description"]),
					dependencies=as_str_list(raw.get("dependencies")),
					estimated_complexity=as_complexity(raw.get("estimatedComplexity", "medium")),
					required_tools=as_str_list(raw.get("requiredTools")),
				))
			return items

		except PlanParseError as e:
			logger.warning(f"Failed to parse task plan, using fallback: {e}")
			return [self.fallback_item(request)]

	@staticmethod
	def fallback_item(request: Optional[str] = None) -> PlanItem:
		return PlanItem(
			description=request or FALLBACK_DESCRIPTION,
			dependencies=[],
			estimated_complexity=Complexity.MEDIUM,
			required_tools=[],
		)

	# -- Tree construction --

	def create_task(self, description: str, status: TaskStatus = TaskStatus.PENDING) -> Task:
		return Task(description=description, status=status)

	def create_task_tree(self, request: str, items: list[PlanItem]) -> TaskTree:
		"""
		Build a root task for the request with one child per plan item.

		The tree is flat. Declared dependencies are kept in metadata only;
		children run in plan order.
		"""
		tree = TaskTree(self.create_task(request))
		for index, item in enumerate(items):
			subtask = self.create_task(item.description)
			subtask.metadata = {
				"complexity": item.estimated_complexity.value,
				"required_tools": list(item.required_tools),
				"dependencies": list(item.dependencies),
				"original_index": index,
			}
			tree.add(subtask, parent_id=tree.root_id)
		return tree

	# -- Queries --

	def calculate_progress(self, tree: TaskTree, task_id: Optional[str] = None) -> int:
		"""Complexity-weighted progress (low/medium/high = 1/2/3)."""
		task = tree.get(task_id or tree.root_id or "")
		if task is None:
			return 0

		children = tree.children(task.id)
		if not children:
			if task.status == TaskStatus.COMPLETED:
				return 100
			if task.status == TaskStatus.IN_PROGRESS:
				return 50
			return 0

		total_weight = 0.0
		completed_weight = 0.0
		for child in children:
			weight = COMPLEXITY_WEIGHTS.get(str(child.metadata.get("complexity", "medium")), 2)
			total_weight += weight
			if child.status == TaskStatus.COMPLETED:
				completed_weight += weight
			elif child.status == TaskStatus.IN_PROGRESS:
				completed_weight += weight * 0.5

		return round_half_up(completed_weight / total_weight * 100) if total_weight > 0 else 0

	def get_next_subtask(self, tree: TaskTree, task_id: Optional[str] = None) -> Optional[Task]:
		"""Depth-first search for the first pending task below task_id."""
		start = task_id or tree.root_id
		if start is None:
			return None
		for task in tree.descendants(start):
			if task.status == TaskStatus.PENDING:
				return task
		return None

	def is_complete(self, tree: TaskTree, task_id: Optional[str] = None) -> bool:
		"""A leaf is complete when completed; a parent when every child is."""
		task = tree.get(task_id or tree.root_id or "")
		if task is None:
			return False
		children = tree.children(task.id)
		if not children:
			return task.status == TaskStatus.COMPLETED
		return all(self.is_complete(tree, child.id) for child in children)
