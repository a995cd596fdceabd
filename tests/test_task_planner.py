"""Tests for the Task Planner."""

import json

import pytest

from openwork.orchestrator.planner import FALLBACK_DESCRIPTION, TaskPlanner
from openwork.plans.models import Complexity, PlanItem
from openwork.tasks.models import TaskStatus

from .helpers import make_tool


@pytest.fixture
def planner():
	return TaskPlanner()


def tasks_response(*tasks: dict, prose: str = "Sure, here is my plan:") -> str:
	return f"{prose}\n{json.dumps({'tasks': list(tasks)})}\nLet me know."


class TestPlanningPrompt:
	def test_lists_registered_tools(self, planner):
		planner.register_tool(make_tool("file_read"))
		planner.register_tool(make_tool("browser_click"))

		prompt = planner.get_planning_prompt()

		assert "Return your plan as JSON" in prompt
		assert "- file_read: The file_read tool" in prompt
		assert "- browser_click: The browser_click tool" in prompt

	def test_placeholder_without_tools(self, planner):
		assert "No tools registered yet." in planner.get_planning_prompt()


class TestParsePlanResponse:
	def test_parses_tasks_embedded_in_prose(self, planner):
		response = tasks_response(
			{"description": "Read the report", "estimatedComplexity": "low", "requiredTools": ["file_read"]},
			{"description": "Write a summary", "dependencies": ["0"], "estimatedComplexity": "HIGH"},
		)

		items = planner.parse_plan_response(response)

		assert [i.description for i in items] == ["Read the report", "Write a summary"]
		assert items[0].estimated_complexity == Complexity.LOW
		assert items[0].required_tools == ["file_read"]
		assert items[1].estimated_complexity == Complexity.HIGH
		assert items[1].dependencies == ["0"]

	def test_unknown_complexity_defaults_to_medium(self, planner):
		items = planner.parse_plan_response(tasks_response({"description": "x", "estimatedComplexity": "epic"}))
		assert items[0].estimated_complexity == Complexity.MEDIUM

	def test_prose_only_falls_back_to_single_item(self, planner):
		"""No JSON at all yields exactly one medium-complexity item."""
		items = planner.parse_plan_response("I would start by reading the files.")

		assert len(items) == 1
		assert items[0].description == FALLBACK_DESCRIPTION
		assert items[0].estimated_complexity == Complexity.MEDIUM
		assert items[0].dependencies == []
		assert items[0].required_tools == []

	def test_fallback_uses_request_text(self, planner):
		items = planner.parse_plan_response("no plan here", request="Summarize the inbox")
		assert [i.description for i in items] == ["Summarize the inbox"]

	def test_missing_tasks_array_falls_back(self, planner):
		items = planner.parse_plan_response('{"steps": [{"description": "nope"}]}')
		assert len(items) == 1
		assert items[0].description == FALLBACK_DESCRIPTION

	def test_empty_tasks_array_falls_back(self, planner):
		items = planner.parse_plan_response('{"tasks": []}')
		assert len(items) == 1

	def test_task_without_description_falls_back(self, planner):
		items = planner.parse_plan_response(tasks_response({"description": "ok"}, {"dependencies": []}))
		assert len(items) == 1
		assert items[0].description == FALLBACK_DESCRIPTION


class TestCreateTaskTree:
	def test_flat_tree_with_metadata(self, planner):
		items = [
			PlanItem(description="A", estimated_complexity=Complexity.LOW, required_tools=["t"]),
			PlanItem(description="B", dependencies=["A"]),
		]

		tree = planner.create_task_tree("Do A then B", items)

		assert tree.root.description == "Do A then B"
		assert tree.root.status == TaskStatus.PENDING
		children = tree.children(tree.root_id)
		assert [c.description for c in children] == ["A", "B"]
		assert all(c.is_leaf for c in children)
		assert all(c.parent_id == tree.root_id for c in children)
		assert children[0].metadata == {
			"complexity": "low",
			"required_tools": ["t"],
			"dependencies": [],
			"original_index": 0,
		}
		assert children[1].metadata["dependencies"] == ["A"]
		assert children[1].metadata["original_index"] == 1


class TestTreeQueries:
	@pytest.fixture
	def tree(self, planner):
		items = [
			PlanItem(description="low", estimated_complexity=Complexity.LOW),
			PlanItem(description="high", estimated_complexity=Complexity.HIGH),
		]
		return planner.create_task_tree("request", items)

	def test_weighted_progress(self, planner, tree):
		"""A completed low item and an in-progress high item weigh (1 + 1.5) / 4."""
		low, high = tree.children(tree.root_id)
		low.status = TaskStatus.COMPLETED
		high.status = TaskStatus.IN_PROGRESS

		assert planner.calculate_progress(tree) == 63

	def test_leaf_progress_by_status(self, planner, tree):
		low, high = tree.children(tree.root_id)
		low.status = TaskStatus.IN_PROGRESS
		assert planner.calculate_progress(tree, low.id) == 50
		assert planner.calculate_progress(tree, high.id) == 0

	def test_next_subtask_is_first_pending(self, planner, tree):
		low, high = tree.children(tree.root_id)
		assert planner.get_next_subtask(tree) is low
		low.status = TaskStatus.COMPLETED
		assert planner.get_next_subtask(tree) is high
		high.status = TaskStatus.FAILED
		assert planner.get_next_subtask(tree) is None

	def test_is_complete_requires_every_child(self, planner, tree):
		low, high = tree.children(tree.root_id)
		low.status = TaskStatus.COMPLETED
		assert not planner.is_complete(tree)
		high.status = TaskStatus.COMPLETED
		assert planner.is_complete(tree)
