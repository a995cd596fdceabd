"""Shared types for provider adapters."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from ..plans.models import ExecutionPlan, PlanStep
from ..tools.base import ToolCall


class ProviderId(str, Enum):
	"""Supported reasoning providers."""
	CLAUDE = "claude"
	OPENAI = "openai"
	GEMINI = "gemini"
	OLLAMA = "ollama"


class AgentMode(str, Enum):
	"""How run_agent treats a task."""
	PLAN = "plan"
	EXECUTE = "execute"
	AUTO = "auto"


class MessageRole(str, Enum):
	USER = "user"
	ASSISTANT = "assistant"
	SYSTEM = "system"
	TOOL = "tool"


@dataclass
class AdapterConfig:
	"""Construction options shared by every adapter."""
	api_key: Optional[str] = None
	host: Optional[str] = None
	model: Optional[str] = None
	max_tokens: int = 4096
	temperature: Optional[float] = None
	mode: AgentMode = AgentMode.PLAN
	plan_approval_required: bool = False
	organization: Optional[str] = None


@dataclass
class Message:
	"""A provider-neutral chat message."""
	role: MessageRole
	content: str


@dataclass
class ChatChunk:
	"""One element of a streamed chat: text chunks, then a single done."""
	type: str  # text | done
	content: Optional[str] = None


@dataclass
class PlanContext:
	"""Optional session context included in planning prompts."""
	working_directory: Optional[str] = None
	context_files: list[str] = field(default_factory=list)

	def describe(self) -> str:
		files = ", ".join(self.context_files) or "None"
		return (
			f"Working directory: {self.working_directory or 'Not specified'}\n"
			f"Context files: {files}"
		)


@dataclass
class AgentProgress:
	"""Progress report from an adapter to its caller."""
	message: str
	progress: float
	step: Optional[PlanStep] = None
	plan: Optional[ExecutionPlan] = None


ProgressCallback = Callable[[AgentProgress], None]


@dataclass
class StepResult:
	"""Outcome of executing one plan step."""
	success: bool
	output: str = ""
	error: Optional[str] = None
	iterations: int = 0


@dataclass
class AgentResult:
	"""Outcome of a full agent run or task execution."""
	success: bool
	output: Optional[str] = None
	error: Optional[str] = None
	duration: Optional[float] = None
	artifacts: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class ProviderTurn:
	"""What one provider round trip produced inside the step loop."""
	text: list[str] = field(default_factory=list)
	tool_calls: list[ToolCall] = field(default_factory=list)
	raw: Any = None
	finished: bool = False
