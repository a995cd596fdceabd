"""
Parse execution plans out of free-form provider text.

Providers are asked for JSON but routinely wrap it in prose or code
fences. Parsing failures never escape: every entry point here falls back
to a single-step plan built from the original task text.
"""

import json
import logging
from typing import Any, Optional

from ..errors import PlanParseError
from .models import Complexity, ExecutionPlan, PlanStep

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
	"""Return the first top-level JSON object embedded in text, if any."""
	if not text:
		return None
	index = text.find("{")
	while index != -1:
		try:
			value, _ = _decoder.raw_decode(text, index)
		except json.JSONDecodeError:
			index = text.find("{", index + 1)
			continue
		if isinstance(value, dict):
			return value
		index = text.find("{", index + 1)
	return None


def as_str_list(value: Any) -> list[str]:
	if not isinstance(value, list):
		return []
	return [str(v) for v in value if isinstance(v, (str, int, float))]


def as_complexity(value: Any) -> Complexity:
	try:
		return Complexity(str(value).lower())
	except ValueError:
		return Complexity.MEDIUM


def fallback_plan(task: str) -> ExecutionPlan:
	"""The deterministic single-step plan used when parsing fails."""
	return ExecutionPlan(
		goal=task,
		steps=[PlanStep(id="step_1", description=task, order=1)],
		estimated_complexity=Complexity.MEDIUM,
		required_approvals=[],
	)


def _plan_from_dict(data: dict[str, Any], task: str) -> ExecutionPlan:
	raw_steps = data.get("steps")
	if not isinstance(raw_steps, list) or not raw_steps:
		raise PlanParseError("Plan has no steps array")

	steps: list[PlanStep] = []
	for index, raw in enumerate(raw_steps):
		if not isinstance(raw, dict):
			raise PlanParseError(f"Step {index + 1} is not an object")
		steps.append(PlanStep(
			id=str(raw.get("id") or f"step_{index + 1}"),
			description=str(raw.get("description") or "Execute step"),
			tools_needed=as_str_list(raw.get("toolsNeeded")),
			dependencies=as_str_list(raw.get("dependencies")),
			order=index + 1,
		))

	goal = data.get("goal")
	return ExecutionPlan(
		goal=goal if isinstance(goal, str) and goal else task,
		steps=steps,
		estimated_complexity=as_complexity(data.get("estimatedComplexity", "medium")),
		required_approvals=as_str_list(data.get("requiredApprovals")),
	)


def parse_execution_plan(response: str, task: str) -> ExecutionPlan:
	"""
	Parse a provider response into an ExecutionPlan.

	Expects the shape {"goal", "steps": [{"id", "description",
	"toolsNeeded", "dependencies"}], "estimatedComplexity",
	"requiredApprovals"}. Falls back to a single step whose description
	is the task text when the response has no usable plan.
	"""
	try:
		data = extract_json_object(response)
		if data is None:
			raise PlanParseError("No JSON object found in response")
		return _plan_from_dict(data, task)
	except PlanParseError as e:
		logger.warning(f"Failed to parse execution plan, using single-step fallback: {e}")
		return fallback_plan(task)
