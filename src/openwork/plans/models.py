"""
Plan Models - Pydantic schemas for provider-produced plans.

ExecutionPlan/PlanStep are what an adapter's create_plan returns and what
run_agent and the plan-mode workflow execute. PlanItem is the Task
Planner's flatter shape, turned 1:1 into subtasks of a task tree.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Complexity(str, Enum):
	"""Estimated complexity of a plan or plan item."""
	LOW = "low"
	MEDIUM = "medium"
	HIGH = "high"


class PlanStepStatus(str, Enum):
	"""Status of a single plan step."""
	PENDING = "pending"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"
	FAILED = "failed"


class PlanStep(BaseModel):
	"""One action within an execution plan."""
	id: str = Field(description="Step identifier (e.g., 'step_1')")
	description: str = Field(description="What this step accomplishes")
	tools_needed: list[str] = Field(default_factory=list)
	dependencies: list[str] = Field(default_factory=list, description="Step IDs this depends on")
	status: PlanStepStatus = Field(default=PlanStepStatus.PENDING)
	order: int = Field(default=0)
	output: Optional[str] = Field(default=None)
	error: Optional[str] = Field(default=None)


class ExecutionPlan(BaseModel):
	"""An ordered plan produced by a provider for one task."""
	goal: str = Field(description="What the plan achieves")
	steps: list[PlanStep] = Field(default_factory=list)
	estimated_complexity: Complexity = Field(default=Complexity.MEDIUM)
	required_approvals: list[str] = Field(default_factory=list)

	def get_step(self, step_id: str) -> Optional[PlanStep]:
		for step in self.steps:
			if step.id == step_id:
				return step
		return None

	def get_progress(self) -> dict:
		"""Counts of steps by status."""
		total = len(self.steps)
		completed = len([s for s in self.steps if s.status == PlanStepStatus.COMPLETED])
		failed = len([s for s in self.steps if s.status == PlanStepStatus.FAILED])
		return {
			"total_steps": total,
			"completed_steps": completed,
			"failed_steps": failed,
			"percent_complete": round(completed / total * 100, 1) if total > 0 else 0,
		}


class PlanItem(BaseModel):
	"""A planned subtask, as returned by the Task Planner."""
	description: str
	dependencies: list[str] = Field(default_factory=list)
	estimated_complexity: Complexity = Field(default=Complexity.MEDIUM)
	required_tools: list[str] = Field(default_factory=list)
