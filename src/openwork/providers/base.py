"""
Base provider adapter.

Every provider variant plugs into one contract. The shared logic lives
here: plan creation with single-step fallback, the bounded tool-calling
loop, mode dispatch and progress mapping. Variants supply the wire
formatting through a handful of hooks.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence

from ..errors import ConfigurationError, StepExecutionFailure
from ..plans.models import ExecutionPlan, PlanStep, PlanStepStatus
from ..plans.parsing import parse_execution_plan
from ..tools.base import Tool, ToolCall, ToolResult, execute_tool, find_tool, tool_not_found
from .types import (
	AdapterConfig,
	AgentMode,
	AgentProgress,
	AgentResult,
	ChatChunk,
	Message,
	PlanContext,
	ProgressCallback,
	ProviderTurn,
	StepResult,
)

logger = logging.getLogger(__name__)

MAX_STEP_ITERATIONS = 10

# Share of the 0-100 scale used by run_agent in plan mode
PLAN_CREATED_PROGRESS = 10
STEPS_START_PROGRESS = 15
STEPS_PROGRESS_SPAN = 80

COMPLEX_INDICATORS = (
	"create", "build", "implement", "refactor", "analyze",
	"multiple", "several", "all", "each", "every",
	"then", "after", "first", "finally",
)

PLAN_SCHEMA_HINT = """{
  "goal": "Brief description of the overall goal",
  "steps": [
    {
      "id": "step_1",
      "description": "What this step accomplishes",
      "toolsNeeded": ["tool_name"],
      "dependencies": []
    }
  ],
  "estimatedComplexity": "low" | "medium" | "high",
  "requiredApprovals": []
}"""

PlanApprovalCallback = Callable[[ExecutionPlan], Awaitable[bool]]


def determine_mode(task: str) -> AgentMode:
	"""Plan when at least two complexity indicators appear in the task."""
	task_lower = task.lower()
	score = sum(1 for indicator in COMPLEX_INDICATORS if indicator in task_lower)
	return AgentMode.PLAN if score >= 2 else AgentMode.EXECUTE


def describe_tools(tools: Sequence[Tool]) -> str:
	return "\n".join(f"- {t.name}: {t.description}" for t in tools)


class BaseProviderAdapter(ABC):
	"""Contract every provider adapter satisfies."""

	name: str = ""
	display_name: str = ""
	supported_models: list[str] = []
	default_model: str = ""
	requires_api_key: bool = True

	def __init__(self, config: Optional[AdapterConfig] = None):
		self.config = config or AdapterConfig()
		self.mode = self.config.mode
		self.model = self.config.model or self.default_model

	def get_mode(self) -> AgentMode:
		return self.mode

	def set_mode(self, mode: AgentMode) -> None:
		self.mode = AgentMode(mode)

	def is_configured(self) -> bool:
		"""Whether required credentials are present."""
		return bool(self.config.api_key) if self.requires_api_key else True

	def ensure_configured(self) -> None:
		if not self.is_configured():
			raise ConfigurationError(f"{self.display_name or self.name} is not configured: missing API key")

	@abstractmethod
	async def validate_credential(self) -> bool:
		"""One minimal round trip. Returns False instead of raising."""

	@abstractmethod
	def chat(self, messages: Sequence[Message], tools: Optional[Sequence[Tool]] = None) -> AsyncIterator[ChatChunk]:
		"""Stream a chat: text chunks followed by one done chunk."""

	@abstractmethod
	async def complete(self, prompt: str) -> str:
		"""Single non-streaming completion returning the full text."""

	@abstractmethod
	def convert_tools(self, tools: Sequence[Tool]) -> Any:
		"""Translate tools to the provider's declaration format."""

	# -- Planning --

	def build_plan_prompt(self, task: str, tools: Sequence[Tool], context: Optional[PlanContext]) -> str:
		"""Planning prompt. Variants override to suit their models."""
		context_info = f"\n{context.describe()}" if context else ""
		return (
			"You are an AI assistant that helps users complete tasks by creating detailed execution plans.\n\n"
			"When given a task, analyze it and create a step-by-step plan. Consider:\n"
			"1. What files or resources are needed\n"
			"2. What tools will be used for each step\n"
			"3. Dependencies between steps\n"
			"4. Potential issues or edge cases\n\n"
			f"Output your plan as JSON in this format:\n{PLAN_SCHEMA_HINT}\n\n"
			f"Available tools:\n{describe_tools(tools)}\n"
			f"{context_info}\n\n"
			f"User task: {task}\n\n"
			"Create a detailed execution plan for this task."
		)

	async def create_plan(
		self,
		task: str,
		tools: Sequence[Tool],
		context: Optional[PlanContext] = None,
	) -> ExecutionPlan:
		"""Ask the provider for a plan; unparseable output degrades to one step."""
		prompt = self.build_plan_prompt(task, tools, context)
		response = await self.complete(prompt)
		return parse_execution_plan(response, task)

	# -- Bounded tool-calling loop --

	@abstractmethod
	def _start_conversation(self, step: PlanStep, tools: Sequence[Tool]) -> Any:
		"""Create the provider-native context for executing a step."""

	@abstractmethod
	async def _send_turn(self, conversation: Any, tools: Sequence[Tool]) -> ProviderTurn:
		"""Send the conversation and report text and requested tool calls."""

	@abstractmethod
	def _record_turn(
		self,
		conversation: Any,
		turn: ProviderTurn,
		results: list[tuple[ToolCall, ToolResult]],
	) -> None:
		"""Feed the assistant turn and its tool results back into the conversation."""

	async def _invoke(self, call: ToolCall, tools: Sequence[Tool]) -> ToolResult:
		if call.error:
			return ToolResult(success=False, error=call.error)
		tool = find_tool(tools, call.name)
		if tool is None:
			logger.info(f"Provider requested unknown tool: {call.name}")
			return tool_not_found(call.name)
		return await self.execute_tool(tool, call.input)

	async def execute_tool(self, tool: Tool, input: Any) -> ToolResult:
		return await execute_tool(tool, input)

	async def execute_step(
		self,
		step: PlanStep,
		tools: Sequence[Tool],
		on_progress: ProgressCallback,
	) -> StepResult:
		"""
		Execute one plan step through at most MAX_STEP_ITERATIONS turns.

		Stops early on the first turn that requests no tool. Tool calls are
		run one at a time; missing tools and tool exceptions become failed
		results fed back to the provider. A provider error ends the step
		with success=False and whatever output was collected so far.
		"""
		conversation = self._start_conversation(step, tools)
		outputs: list[str] = []
		iteration = 0

		while iteration < MAX_STEP_ITERATIONS:
			iteration += 1
			on_progress(AgentProgress(
				message=f"Executing step (iteration {iteration})...",
				progress=iteration / MAX_STEP_ITERATIONS * 80,
			))

			try:
				turn = await self._send_turn(conversation, tools)
			except Exception as e:
				logger.error(f"{self.name} provider call failed during step {step.id}: {e}")
				return StepResult(
					success=False,
					output="\n".join(outputs),
					error=f"{self.display_name or self.name} request failed: {e}",
					iterations=iteration,
				)

			outputs.extend(text for text in turn.text if text)

			if not turn.tool_calls:
				return StepResult(success=True, output="\n".join(outputs), iterations=iteration)

			results: list[tuple[ToolCall, ToolResult]] = []
			for call in turn.tool_calls:
				on_progress(AgentProgress(
					message=f"Using tool: {call.name}",
					progress=iteration / MAX_STEP_ITERATIONS * 80 + 10,
				))
				results.append((call, await self._invoke(call, tools)))
			self._record_turn(conversation, turn, results)

			if turn.finished:
				return StepResult(success=True, output="\n".join(outputs), iterations=iteration)

		logger.warning(f"Step {step.id} hit the {MAX_STEP_ITERATIONS}-iteration cap")
		return StepResult(success=True, output="\n".join(outputs), iterations=iteration)

	# -- Mode dispatch --

	async def determine_mode(self, task: str) -> AgentMode:
		return determine_mode(task)

	async def execute_directly(
		self,
		task: str,
		tools: Sequence[Tool],
		on_progress: ProgressCallback,
	) -> AgentResult:
		"""Run the task as a single synthetic step."""
		on_progress(AgentProgress(message="Executing task directly...", progress=10))
		step = PlanStep(id="direct", description=task, status=PlanStepStatus.IN_PROGRESS)
		result = await self.execute_step(step, tools, on_progress)
		if result.success:
			on_progress(AgentProgress(message="Task completed", progress=100))
		return AgentResult(success=result.success, output=result.output, error=result.error)

	async def run_agent(
		self,
		task: str,
		tools: Sequence[Tool],
		on_progress: ProgressCallback,
		context: Optional[PlanContext] = None,
		on_plan_created: Optional[PlanApprovalCallback] = None,
	) -> AgentResult:
		"""
		Run a task in the configured mode.

		plan: create a plan, optionally wait for approval, then execute
		steps in order; the first failed step ends the run.
		execute: run the task directly as one step.
		auto: pick one of the above with determine_mode.
		"""
		start = time.monotonic()

		def finish(result: AgentResult) -> AgentResult:
			result.duration = time.monotonic() - start
			return result

		try:
			mode = self.mode
			if mode == AgentMode.AUTO:
				mode = await self.determine_mode(task)
				logger.debug(f"Auto mode resolved to {mode.value} for task: {task[:60]}")

			if mode != AgentMode.PLAN:
				return finish(await self.execute_directly(task, tools, on_progress))

			on_progress(AgentProgress(message="Creating execution plan...", progress=5))
			plan = await self.create_plan(task, tools, context)
			on_progress(AgentProgress(
				message=f"Plan created with {len(plan.steps)} steps",
				progress=PLAN_CREATED_PROGRESS,
				plan=plan,
			))

			if self.config.plan_approval_required and on_plan_created is not None:
				approved = await on_plan_created(plan)
				if not approved:
					return finish(AgentResult(success=False, error="Plan was not approved by user"))

			per_step = STEPS_PROGRESS_SPAN / len(plan.steps)
			current = float(STEPS_START_PROGRESS)
			outputs: list[str] = []

			for step in plan.steps:
				step.status = PlanStepStatus.IN_PROGRESS
				on_progress(AgentProgress(
					message=f"Executing: {step.description}",
					progress=current,
					step=step,
					plan=plan,
				))

				base = current

				def scaled(update: AgentProgress, _base: float = base, _step: PlanStep = step) -> None:
					on_progress(AgentProgress(
						message=update.message,
						progress=_base + (update.progress / 100) * per_step,
						step=_step,
						plan=plan,
					))

				result = await self.execute_step(step, tools, scaled)
				step.output = result.output or None

				if not result.success:
					step.status = PlanStepStatus.FAILED
					failure = StepExecutionFailure(step.id, step.description, result.error)
					step.error = str(failure)
					logger.warning(f"Step {step.id} failed, abandoning remaining plan: {failure}")
					return finish(AgentResult(success=False, output="\n\n".join(outputs) or None, error=str(failure)))

				step.status = PlanStepStatus.COMPLETED
				if result.output:
					outputs.append(result.output)
				current += per_step

			on_progress(AgentProgress(message="Task completed successfully", progress=100))
			return finish(AgentResult(success=True, output="\n\n".join(outputs)))

		except Exception as e:
			logger.exception(f"{self.name} agent run failed")
			return finish(AgentResult(success=False, error=str(e) or "Unknown error"))
