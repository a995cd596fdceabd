"""
Agent Orchestrator - composition root for one session.

Owns the session, the tool and skill registries, the Task Planner and
the Progress Tracker, and the active provider adapter. Classic
execution plans a request into a task tree and runs its subtasks one
after another through the adapter; plan mode is available through
create_workflow().
"""

import logging
import time
from typing import Any, Callable, Iterable, Optional, Union

from ..errors import ConcurrencyConflict, ConfigurationError
from ..providers import create_adapter
from ..providers.base import BaseProviderAdapter, PlanApprovalCallback
from ..providers.types import AdapterConfig, AgentProgress, AgentResult, PlanContext, ProviderId
from ..tasks.models import Task, TaskStatus, TaskTree
from ..tools.base import Tool, ToolResult, execute_tool, tool_not_found
from .plan_mode import PlanModeWorkflow
from .planner import TaskPlanner
from .progress import ProgressSubscriber, ProgressTracker
from .session import Session, SessionConfig
from .skills import Skill, SkillContext, SkillResult

logger = logging.getLogger(__name__)

NO_ADAPTER = "No provider adapter configured. Call set_adapter() first."
CANCELLED = "Task cancelled by user"


class AgentOrchestrator:
	"""
	Coordinates planning, execution and progress for one session.

	At most one task execution is in flight at a time. cancel() is
	cooperative: an in-flight provider call finishes on its own and its
	result is discarded.
	"""

	def __init__(
		self,
		config: Optional[SessionConfig] = None,
		adapter: Optional[BaseProviderAdapter] = None,
		on_plan_created: Optional[PlanApprovalCallback] = None,
	):
		"""
		Initialize the orchestrator.

		Args:
			config: Session configuration
			adapter: Active provider adapter; can be set later
			on_plan_created: Approval callback for adapters that require plan approval
		"""
		self.session = Session(config=config or SessionConfig())
		self.adapter = adapter
		self.on_plan_created = on_plan_created
		self.tools: dict[str, Tool] = {}
		self.skills: dict[str, Skill] = {}
		self.planner = TaskPlanner()
		self.tracker = ProgressTracker()
		self.is_running = False
		self._run_token: Optional[object] = None

	# -- Adapter --

	def set_adapter(self, adapter: BaseProviderAdapter) -> None:
		self.adapter = adapter

	def get_adapter(self) -> Optional[BaseProviderAdapter]:
		return self.adapter

	def use_provider(
		self,
		provider: Optional[Union[ProviderId, str]] = None,
		config: Optional[AdapterConfig] = None,
	) -> BaseProviderAdapter:
		"""
		Build and activate an adapter.

		Without an explicit AdapterConfig, one is derived from the session
		configuration. Raises ConfigurationError for an unknown provider.
		"""
		session_config = self.session.config
		if config is None:
			# A different provider starts from its own default model and credentials
			keep = provider is None
			config = AdapterConfig(
				api_key=session_config.api_key if keep else None,
				host=session_config.base_url if keep else None,
				model=session_config.model if keep else None,
				max_tokens=session_config.max_tokens,
				temperature=session_config.temperature,
			)
		adapter = create_adapter(provider or session_config.provider, config)
		self.update_config(provider=ProviderId(adapter.name), model=adapter.model)
		self.adapter = adapter
		return adapter

	# -- Session --

	def set_working_directory(self, path: str) -> None:
		self.session.working_directory = path
		self.session.touch()

	def get_working_directory(self) -> str:
		return self.session.working_directory

	def add_context_files(self, files: Iterable[str]) -> None:
		self.session.context_files.extend(files)
		self.session.touch()

	def clear_context_files(self) -> None:
		self.session.context_files = []
		self.session.touch()

	def get_session(self) -> Session:
		return self.session.snapshot()

	def update_config(self, **changes: Any) -> SessionConfig:
		"""Merge validated changes into the session configuration."""
		self.session.config = self.session.config.merged(**changes)
		self.session.touch()
		return self.session.config

	def _plan_context(self) -> PlanContext:
		return PlanContext(
			working_directory=self.session.working_directory,
			context_files=list(self.session.context_files),
		)

	# -- Registries --

	def register_tool(self, tool: Tool) -> None:
		self.tools[tool.name] = tool
		self.planner.register_tool(tool)

	def register_tools(self, tools: Iterable[Tool]) -> None:
		for tool in tools:
			self.register_tool(tool)

	def get_tools(self) -> list[Tool]:
		return list(self.tools.values())

	def register_skill(self, skill: Skill) -> None:
		self.skills[skill.name] = skill

	def get_skills(self) -> list[Skill]:
		return list(self.skills.values())

	async def execute_skill(self, skill_name: str, input: Optional[dict[str, Any]] = None) -> SkillResult:
		skill = self.skills.get(skill_name)
		if skill is None:
			return SkillResult(success=False, error=f"Skill not found: {skill_name}")
		if self.adapter is None:
			return SkillResult(success=False, error=NO_ADAPTER)

		context = SkillContext(
			session=self.session,
			tools=self.tools,
			adapter=self.adapter,
			input=input or {},
		)
		try:
			return await skill.execute(context)
		except Exception as e:
			logger.error(f"Skill {skill_name} failed: {e}")
			return SkillResult(success=False, error=str(e) or "Unknown error")

	async def execute_tool(self, tool_name: str, input: Any) -> ToolResult:
		"""Invoke a registered tool directly."""
		tool = self.tools.get(tool_name)
		if tool is None:
			return tool_not_found(tool_name)
		return await execute_tool(tool, input)

	# -- Progress --

	def on_progress(self, callback: ProgressSubscriber) -> Callable[[], None]:
		"""Subscribe to progress updates. Returns an unsubscribe function."""
		return self.tracker.subscribe(callback)

	def get_progress(self) -> dict:
		return self.tracker.get_summary()

	def get_task(self, task_id: str) -> Optional[Task]:
		return self.tracker.get_task(task_id)

	# -- Planning --

	async def plan_task(self, request: str) -> TaskTree:
		"""
		Break a request into a task tree and start tracking it.

		Raises:
			ConfigurationError: No adapter, or the adapter lacks credentials
		"""
		if self.adapter is None:
			raise ConfigurationError(NO_ADAPTER)
		self.adapter.ensure_configured()

		prompt = (
			f"{self.planner.get_planning_prompt()}\n\n"
			f"User request: {request}\n\n"
			f"{self._plan_context().describe()}\n\n"
			"Please analyze this request and create a task plan."
		)
		response = await self.adapter.complete(prompt)
		items = self.planner.parse_plan_response(response, request)

		tree = self.planner.create_task_tree(request, items)
		self.tracker.register_task(tree)
		self.session.task_trees.append(tree)
		self.session.touch()
		logger.info(f"Planned {len(items)} subtask(s) for: {request[:60]}")
		return tree

	# -- Execution --

	def _cancelled(self, token: object) -> bool:
		return self._run_token is not token

	async def execute_task(self, task_id: str) -> AgentResult:
		"""
		Execute a tracked task.

		A task with subtasks runs them in order and stops at the first
		failure; a leaf task is handed to the adapter as a whole. Failures
		are returned, never raised.
		"""
		if self.adapter is None:
			return AgentResult(success=False, error=NO_ADAPTER)

		task = self.tracker.get_task(task_id)
		if task is None:
			return AgentResult(success=False, error=f"Task not found: {task_id}")

		if self.is_running:
			conflict = ConcurrencyConflict()
			logger.warning(f"Rejected execution of {task_id}: {conflict}")
			return AgentResult(success=False, error=str(conflict))

		token = object()
		self._run_token = token
		self.is_running = True
		start = time.monotonic()

		try:
			self.tracker.update_status(task_id, TaskStatus.IN_PROGRESS, "Starting task execution")

			subtasks = self.tracker.children(task_id)
			if subtasks:
				outputs: list[str] = []
				for subtask in subtasks:
					if subtask.status == TaskStatus.COMPLETED:
						continue
					result = await self._execute_subtask(subtask, token)
					if self._cancelled(token):
						return AgentResult(success=False, error=CANCELLED, duration=time.monotonic() - start)
					if not result.success:
						self.tracker.set_error(task_id, result.error or "Subtask failed")
						result.duration = time.monotonic() - start
						return result
					if result.output:
						outputs.append(result.output)
				self.tracker.set_result(task_id, "\n\n".join(outputs))
			else:
				result = await self._run_agent(task, token)
				if self._cancelled(token):
					return AgentResult(success=False, error=CANCELLED, duration=time.monotonic() - start)
				if not result.success:
					self.tracker.set_error(task_id, result.error or "Task failed")
					result.duration = time.monotonic() - start
					return result
				self.tracker.set_result(task_id, result.output or "")

			self.tracker.update_status(task_id, TaskStatus.COMPLETED, "Task completed successfully")
			return AgentResult(success=True, output=task.result, duration=time.monotonic() - start)

		except Exception as e:
			logger.exception(f"Task {task_id} failed unexpectedly")
			if not self._cancelled(token):
				self.tracker.set_error(task_id, str(e) or "Unknown error")
			return AgentResult(success=False, error=str(e) or "Unknown error", duration=time.monotonic() - start)

		finally:
			if self._run_token is token:
				self._run_token = None
				self.is_running = False

	async def _run_agent(self, task: Task, token: object) -> AgentResult:
		assert self.adapter is not None

		def report(update: AgentProgress) -> None:
			if not self._cancelled(token):
				self.tracker.update_progress(task.id, update.progress, update.message)

		return await self.adapter.run_agent(
			task.description,
			self.get_tools(),
			report,
			context=self._plan_context(),
			on_plan_created=self.on_plan_created,
		)

	async def _execute_subtask(self, subtask: Task, token: object) -> AgentResult:
		self.tracker.update_status(subtask.id, TaskStatus.IN_PROGRESS)
		try:
			result = await self._run_agent(subtask, token)
		except Exception as e:
			logger.error(f"Subtask {subtask.id} raised: {e}")
			result = AgentResult(success=False, error=str(e) or "Unknown error")

		if self._cancelled(token):
			return result

		if result.success:
			self.tracker.set_result(subtask.id, result.output or "")
			self.tracker.update_status(subtask.id, TaskStatus.COMPLETED)
		else:
			self.tracker.set_error(subtask.id, result.error or "Failed")
		return result

	def cancel(self) -> None:
		"""Stop the running task after its in-flight call returns."""
		if not self.is_running:
			return
		self.is_running = False
		self._run_token = None
		root = self.tracker.get_root_task()
		if root is not None:
			self.tracker.update_status(root.id, TaskStatus.CANCELLED, CANCELLED)
		logger.info("Task execution cancelled")

	def reset(self) -> None:
		"""Drop all tasks and context files. Registries and adapter are kept."""
		self.is_running = False
		self._run_token = None
		self.tracker.clear()
		self.session.task_trees = []
		self.session.context_files = []
		self.session.touch()

	# -- Plan mode --

	def create_workflow(self, **callbacks: Any) -> PlanModeWorkflow:
		"""
		Start a plan-mode workflow on the active adapter.

		Keyword arguments are passed to PlanModeWorkflow (on_clarification,
		on_plan, on_progress, on_artifact, on_phase_change).
		"""
		if self.adapter is None:
			raise ConfigurationError(NO_ADAPTER)
		return PlanModeWorkflow(self.adapter, **callbacks)
