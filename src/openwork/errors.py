"""
Error taxonomy for the orchestration core.

Only ConfigurationError is raised past public entry points. The other
classes describe failures that are recovered locally or reported inside
result objects; they exist so the messages stay consistent wherever a
failure is converted into a ToolResult, StepResult or AgentResult.
"""


class OpenWorkError(Exception):
	"""Base class for all orchestration errors."""


class ConfigurationError(OpenWorkError):
	"""A provider adapter is missing credentials or required settings."""


class PlanParseError(OpenWorkError):
	"""Provider output could not be parsed into a plan."""


class ToolNotFoundError(OpenWorkError):
	"""The provider asked for a tool that is not registered."""

	def __init__(self, tool_name: str):
		self.tool_name = tool_name
		super().__init__(f"Tool not found: {tool_name}")


class ToolExecutionError(OpenWorkError):
	"""A tool raised while executing."""

	def __init__(self, tool_name: str, cause: BaseException):
		self.tool_name = tool_name
		self.cause = cause
		super().__init__(str(cause) or f"Tool execution failed: {tool_name}")


class StepExecutionFailure(OpenWorkError):
	"""A plan step reported failure; the remaining plan is abandoned."""

	def __init__(self, step_id: str, description: str, reason: str | None = None):
		self.step_id = step_id
		self.description = description
		self.reason = reason
		super().__init__(reason or f"Step failed: {description}")


class ConcurrencyConflict(OpenWorkError):
	"""A second execution was attempted while one is in flight."""

	def __init__(self, message: str = "Another task is already running"):
		super().__init__(message)


class ProviderRequestError(OpenWorkError):
	"""A provider's HTTP API returned an error or an unusable response."""


class WorkflowStateError(OpenWorkError):
	"""A plan-mode operation was called in a phase that does not allow it."""
