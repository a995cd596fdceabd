"""
Orchestration layer.

AgentOrchestrator is the entry point; it wires the TaskPlanner and
ProgressTracker together and hands out PlanModeWorkflow instances.
"""

from .core import AgentOrchestrator
from .plan_mode import (
	PLAN_MODE_SYSTEM_PROMPT,
	Artifact,
	ClarificationQuestion,
	PlanModePhase,
	PlanModeState,
	PlanModeWorkflow,
)
from .planner import TaskPlanner
from .progress import ProgressTracker
from .session import Session, SessionConfig
from .skills import Skill, SkillContext, SkillResult
from .structured_output import ClarificationOption, collapse_events, extract_events

__all__ = [
	"AgentOrchestrator",
	"Artifact",
	"ClarificationOption",
	"ClarificationQuestion",
	"PLAN_MODE_SYSTEM_PROMPT",
	"PlanModePhase",
	"PlanModeState",
	"PlanModeWorkflow",
	"ProgressTracker",
	"Session",
	"SessionConfig",
	"Skill",
	"SkillContext",
	"SkillResult",
	"TaskPlanner",
	"collapse_events",
	"extract_events",
]
