"""
Plan-Mode Workflow - clarification-driven plan, approve, execute loop.

Layered on a provider adapter's single-turn complete(). Every provider
response is scanned for structured events (clarification, plan,
progress, artifact) and the workflow moves between phases accordingly:

	understanding -> clarifying -> planning -> awaiting_approval -> executing

and ends in completed or failed. The conversation so far is replayed in
every prompt.
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import WorkflowStateError
from ..plans.models import ExecutionPlan, PlanStep, PlanStepStatus
from ..providers.base import BaseProviderAdapter
from ..providers.types import Message, MessageRole
from ..tasks.models import generate_id
from .structured_output import (
	ArtifactEvent,
	ClarificationEvent,
	ClarificationOption,
	EstimatedArtifact,
	PlanEvent,
	ProgressEvent,
	StructuredEvent,
	collapse_events,
	extract_events,
)

logger = logging.getLogger(__name__)

PLAN_MODE_SYSTEM_PROMPT = """You are a careful assistant that plans before acting.

Work in phases:
1. Understand the request. If something important is ambiguous, ask ONE clarification question.
2. Propose a plan of concrete steps and wait for the user's approval.
3. When asked to execute a step, do it and report progress and any artifacts you create.

Communicate structured information with JSON blocks fenced as ```json:

Clarification:
{"type": "clarification", "question": "...", "options": [{"id": "a", "label": "...", "description": "...", "shortcut": "1"}], "allowCustom": true, "allowSkip": true}

Plan:
{"type": "plan", "title": "...", "steps": [{"id": "step_1", "label": "...", "order": 1}], "estimatedArtifacts": [{"type": "document", "name": "...", "description": "..."}]}

Progress:
{"type": "progress", "stepId": "step_1", "status": "in_progress" | "completed" | "failed", "message": "..."}

Artifact:
{"type": "artifact", "artifact": {"id": "...", "type": "file", "name": "...", "path": "...", "preview": "..."}}

Never execute anything before the plan is approved."""

SKIP_MESSAGE = "User skipped this question. Proceed with reasonable assumptions."


class PlanModePhase(str, Enum):
	UNDERSTANDING = "understanding"
	CLARIFYING = "clarifying"
	PLANNING = "planning"
	AWAITING_APPROVAL = "awaiting_approval"
	EXECUTING = "executing"
	COMPLETED = "completed"
	FAILED = "failed"


class ClarificationQuestion(BaseModel):
	"""A question the provider needs answered before planning."""
	id: str = Field(default_factory=generate_id)
	question: str
	options: list[ClarificationOption] = Field(default_factory=list)
	allow_custom: bool = True
	allow_skip: bool = True


class Artifact(BaseModel):
	"""Something the provider produced while executing. Never mutated."""
	model_config = ConfigDict(frozen=True)

	id: str = Field(default_factory=generate_id)
	type: str
	name: str
	path: Optional[str] = None
	url: Optional[str] = None
	preview: Optional[str] = None
	created_at: datetime = Field(default_factory=datetime.now)


@dataclass
class PlanModeState:
	"""Snapshot of a workflow."""
	phase: PlanModePhase
	request: Optional[str] = None
	clarification: Optional[ClarificationQuestion] = None
	plan: Optional[ExecutionPlan] = None
	estimated_artifacts: list[EstimatedArtifact] = field(default_factory=list)
	artifacts: list[Artifact] = field(default_factory=list)
	answers: list[tuple[str, str]] = field(default_factory=list)
	error: Optional[str] = None


class PlanModeWorkflow:
	"""
	Drives one plan-mode conversation with a provider adapter.

	Callbacks may be plain functions or coroutines. A failing callback is
	logged and does not interrupt the workflow.
	"""

	def __init__(
		self,
		adapter: BaseProviderAdapter,
		on_clarification: Optional[Callable[[ClarificationQuestion], Any]] = None,
		on_plan: Optional[Callable[[list[PlanStep]], Any]] = None,
		on_progress: Optional[Callable[[PlanStep, str], Any]] = None,
		on_artifact: Optional[Callable[[Artifact], Any]] = None,
		on_phase_change: Optional[Callable[[PlanModePhase], Any]] = None,
		system_prompt: str = PLAN_MODE_SYSTEM_PROMPT,
	):
		self.adapter = adapter
		self.on_clarification = on_clarification
		self.on_plan = on_plan
		self.on_progress = on_progress
		self.on_artifact = on_artifact
		self.on_phase_change = on_phase_change
		self.system_prompt = system_prompt

		self.phase = PlanModePhase.UNDERSTANDING
		self.request: Optional[str] = None
		self.history: list[Message] = []
		self.clarification: Optional[ClarificationQuestion] = None
		self.plan: Optional[ExecutionPlan] = None
		self.estimated_artifacts: list[EstimatedArtifact] = []
		self.answers: list[tuple[str, str]] = []
		self.error: Optional[str] = None
		self._artifacts: dict[str, Artifact] = {}

	# -- Public operations --

	async def start_task(self, request: str) -> PlanModeState:
		"""Reset the workflow and send the request to the provider."""
		self.request = request
		self.history = []
		self.clarification = None
		self.plan = None
		self.estimated_artifacts = []
		self.answers = []
		self.error = None
		self._artifacts = {}
		await self._set_phase(PlanModePhase.UNDERSTANDING)

		await self._converse(request)
		return self.state

	async def respond_to_clarification(self, answer: str) -> PlanModeState:
		"""Answer the pending clarification question."""
		question = self._require_clarification()
		self.answers.append((question.question, answer))
		self.clarification = None
		await self._set_phase(PlanModePhase.PLANNING)

		await self._converse(f"User selected: {answer}")
		return self.state

	async def skip_clarification(self) -> PlanModeState:
		"""Skip the pending clarification question, where allowed."""
		question = self._require_clarification()
		if not question.allow_skip:
			raise WorkflowStateError("This question cannot be skipped")
		self.clarification = None
		await self._set_phase(PlanModePhase.PLANNING)

		await self._converse(SKIP_MESSAGE)
		return self.state

	async def approve_plan(self) -> PlanModeState:
		"""
		Execute the approved plan one step at a time.

		Each step's response is routed through the same event dispatch, so
		providers can report progress and artifacts per step. Any step
		reported failed, or whose provider call raises, ends execution.
		Steps already reported completed are not sent again.
		"""
		self._require_phase(PlanModePhase.AWAITING_APPROVAL)
		await self._set_phase(PlanModePhase.EXECUTING)
		assert self.plan is not None

		for step in self.plan.steps:
			if step.status == PlanStepStatus.COMPLETED:
				# already reported done by an earlier step's response
				continue
			step.status = PlanStepStatus.IN_PROGRESS
			await self._notify(self.on_progress, step, f"Executing: {step.description}")

			try:
				response = await self._converse(
					f"Execute step {step.id}: {step.description}\n\n"
					"Report progress and artifacts using the JSON formats."
				)
			except Exception as e:
				logger.error(f"Plan step {step.id} failed: {e}")
				step.status = PlanStepStatus.FAILED
				step.error = str(e) or "Step failed"
				await self._fail(step.error)
				await self._notify(self.on_progress, step, step.error)
				return self.state

			failed = next((s for s in self.plan.steps if s.status == PlanStepStatus.FAILED), None)
			if failed is not None:
				await self._fail(failed.error or f"Step failed: {failed.description}")
				return self.state

			step.output = response
			step.status = PlanStepStatus.COMPLETED
			await self._notify(self.on_progress, step, f"Completed: {step.description}")

		await self._set_phase(PlanModePhase.COMPLETED)
		return self.state

	async def reject_plan(self, feedback: str) -> PlanModeState:
		"""Send the plan back for revision with the user's feedback."""
		self._require_phase(PlanModePhase.AWAITING_APPROVAL)
		await self._set_phase(PlanModePhase.PLANNING)

		await self._converse(
			f"The user rejected the plan with this feedback:\n{feedback}\n\n"
			"Please propose a revised plan."
		)
		return self.state

	def get_artifact(self, artifact_id: str) -> Optional[Artifact]:
		return self._artifacts.get(artifact_id)

	def list_artifacts(self) -> list[Artifact]:
		return list(self._artifacts.values())

	@property
	def state(self) -> PlanModeState:
		return PlanModeState(
			phase=self.phase,
			request=self.request,
			clarification=self.clarification,
			plan=self.plan.model_copy(deep=True) if self.plan else None,
			estimated_artifacts=list(self.estimated_artifacts),
			artifacts=self.list_artifacts(),
			answers=list(self.answers),
			error=self.error,
		)

	# -- Conversation --

	def build_prompt(self) -> str:
		"""System instruction followed by the whole conversation."""
		lines = [self.system_prompt, ""]
		for message in self.history:
			speaker = "User" if message.role == MessageRole.USER else "Assistant"
			lines.append(f"{speaker}: {message.content}")
			lines.append("")
		lines.append("Assistant:")
		return "\n".join(lines)

	async def _converse(self, content: str) -> str:
		self.history.append(Message(role=MessageRole.USER, content=content))
		try:
			response = await self.adapter.complete(self.build_prompt())
		except Exception as e:
			if self.phase != PlanModePhase.EXECUTING:
				await self._fail(str(e) or "Provider request failed")
			raise
		self.history.append(Message(role=MessageRole.ASSISTANT, content=response))
		await self.handle_response(response)
		return response

	async def handle_response(self, response: str) -> None:
		"""Dispatch every structured event in a provider response."""
		events = collapse_events(extract_events(response))
		if not events:
			logger.debug(f"No structured events in response during {self.phase.value}")
		for event in events:
			await self._dispatch(event)

	async def _dispatch(self, event: StructuredEvent) -> None:
		if isinstance(event, ClarificationEvent):
			await self._handle_clarification(event)
		elif isinstance(event, PlanEvent):
			await self._handle_plan(event)
		elif isinstance(event, ProgressEvent):
			await self._handle_progress(event)
		elif isinstance(event, ArtifactEvent):
			await self._handle_artifact(event)

	async def _handle_clarification(self, event: ClarificationEvent) -> None:
		if self.phase == PlanModePhase.EXECUTING:
			logger.info("Ignoring clarification request during execution")
			return
		self.clarification = ClarificationQuestion(
			question=event.question,
			options=event.options,
			allow_custom=event.allow_custom,
			allow_skip=event.allow_skip,
		)
		await self._set_phase(PlanModePhase.CLARIFYING)
		await self._notify(self.on_clarification, self.clarification)

	async def _handle_plan(self, event: PlanEvent) -> None:
		if self.phase == PlanModePhase.EXECUTING:
			logger.info("Ignoring plan proposal during execution")
			return
		ordered = sorted(event.steps, key=lambda s: s.order)
		self.plan = ExecutionPlan(
			goal=event.title,
			steps=[
				PlanStep(id=s.id, description=s.label, order=index + 1)
				for index, s in enumerate(ordered)
			],
		)
		self.estimated_artifacts = list(event.estimated_artifacts)
		self.clarification = None
		await self._set_phase(PlanModePhase.AWAITING_APPROVAL)
		await self._notify(self.on_plan, list(self.plan.steps))

	async def _handle_progress(self, event: ProgressEvent) -> None:
		step = self.plan.get_step(event.step_id) if self.plan else None
		if step is None:
			return
		step.status = PlanStepStatus(event.status)
		if step.status == PlanStepStatus.FAILED:
			step.error = event.message or f"Step failed: {step.description}"
		await self._notify(self.on_progress, step, event.message)

	async def _handle_artifact(self, event: ArtifactEvent) -> None:
		payload = event.artifact
		artifact = Artifact(
			id=payload.id or generate_id(),
			type=payload.type,
			name=payload.name,
			path=payload.path,
			url=payload.url,
			preview=payload.preview,
		)
		if artifact.id in self._artifacts:
			logger.warning(f"Artifact {artifact.id} already exists; keeping the original")
			return
		self._artifacts[artifact.id] = artifact
		await self._notify(self.on_artifact, artifact)

	# -- Helpers --

	def _require_phase(self, phase: PlanModePhase) -> None:
		if self.phase != phase:
			raise WorkflowStateError(f"Operation requires phase {phase.value}, current phase is {self.phase.value}")

	def _require_clarification(self) -> ClarificationQuestion:
		self._require_phase(PlanModePhase.CLARIFYING)
		if self.clarification is None:
			raise WorkflowStateError("No clarification question is pending")
		return self.clarification

	async def _fail(self, error: str) -> None:
		self.error = error
		await self._set_phase(PlanModePhase.FAILED)

	async def _set_phase(self, phase: PlanModePhase) -> None:
		if phase == self.phase:
			return
		logger.debug(f"Plan mode phase {self.phase.value} -> {phase.value}")
		self.phase = phase
		await self._notify(self.on_phase_change, phase)

	async def _notify(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
		if callback is None:
			return
		try:
			result = callback(*args)
			if inspect.isawaitable(result):
				await result
		except Exception as e:
			logger.error(f"Plan mode callback {getattr(callback, '__name__', callback)} failed: {e}")
