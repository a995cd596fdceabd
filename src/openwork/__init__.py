"""
openwork - plan, approve and execute tasks through interchangeable
reasoning providers while tracking hierarchical progress.
"""

from .errors import (
	ConcurrencyConflict,
	ConfigurationError,
	OpenWorkError,
	PlanParseError,
	StepExecutionFailure,
	ToolExecutionError,
	ToolNotFoundError,
	WorkflowStateError,
)
from .orchestrator import (
	AgentOrchestrator,
	Artifact,
	ClarificationQuestion,
	PlanModePhase,
	PlanModeWorkflow,
	ProgressTracker,
	Session,
	SessionConfig,
	Skill,
	SkillContext,
	SkillResult,
	TaskPlanner,
	extract_events,
)
from .plans import ExecutionPlan, PlanItem, PlanStep
from .providers import (
	SUPPORTED_PROVIDERS,
	AdapterConfig,
	AgentMode,
	AgentResult,
	BaseProviderAdapter,
	ProviderId,
	create_adapter,
	determine_mode,
	get_supported_models,
	is_provider_available,
)
from .quick_actions import DEFAULT_QUICK_ACTIONS, QuickAction
from .tasks import ProgressUpdate, Task, TaskStatus, TaskTree, generate_id
from .tools import Tool, ToolResult


def create_orchestrator(
	provider: ProviderId | str = ProviderId.CLAUDE,
	model: str | None = None,
	api_key: str | None = None,
) -> AgentOrchestrator:
	"""Orchestrator with an adapter for the given provider already active."""
	orchestrator = AgentOrchestrator(SessionConfig(provider=ProviderId(provider), api_key=api_key))
	orchestrator.use_provider(config=AdapterConfig(api_key=api_key, model=model))
	return orchestrator


__all__ = [
	"AdapterConfig",
	"AgentMode",
	"AgentOrchestrator",
	"AgentResult",
	"Artifact",
	"BaseProviderAdapter",
	"ClarificationQuestion",
	"ConcurrencyConflict",
	"ConfigurationError",
	"DEFAULT_QUICK_ACTIONS",
	"ExecutionPlan",
	"OpenWorkError",
	"PlanItem",
	"PlanModePhase",
	"PlanModeWorkflow",
	"PlanParseError",
	"PlanStep",
	"ProgressTracker",
	"ProgressUpdate",
	"ProviderId",
	"QuickAction",
	"SUPPORTED_PROVIDERS",
	"Session",
	"SessionConfig",
	"Skill",
	"SkillContext",
	"SkillResult",
	"StepExecutionFailure",
	"Task",
	"TaskPlanner",
	"TaskStatus",
	"TaskTree",
	"Tool",
	"ToolExecutionError",
	"ToolNotFoundError",
	"ToolResult",
	"WorkflowStateError",
	"create_adapter",
	"create_orchestrator",
	"determine_mode",
	"extract_events",
	"generate_id",
	"get_supported_models",
	"is_provider_available",
]
