"""Execution plan models and plan parsing."""

from .models import Complexity, ExecutionPlan, PlanItem, PlanStep, PlanStepStatus
from .parsing import extract_json_object, fallback_plan, parse_execution_plan

__all__ = [
	"Complexity",
	"ExecutionPlan",
	"PlanItem",
	"PlanStep",
	"PlanStepStatus",
	"extract_json_object",
	"fallback_plan",
	"parse_execution_plan",
]
