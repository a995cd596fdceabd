"""
Tool contract.

Concrete tools (file system, browser) are external collaborators; the
core only looks them up by name, invokes them and forwards their result
to the provider as serialized data. It never inspects `output`.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional

from ..errors import ToolExecutionError, ToolNotFoundError

logger = logging.getLogger(__name__)

# JSON-schema subset: type, properties, required, items, enum, description, default
JSONSchema = dict[str, Any]


@dataclass
class ToolResult:
	"""Outcome of one tool invocation."""
	success: bool
	output: Any = None
	error: Optional[str] = None

	def to_dict(self) -> dict[str, Any]:
		data: dict[str, Any] = {"success": self.success}
		if self.output is not None:
			data["output"] = self.output
		if self.error is not None:
			data["error"] = self.error
		return data

	def to_json(self) -> str:
		return json.dumps(self.to_dict(), default=str)


@dataclass
class Tool:
	"""A named capability the provider may invoke."""
	name: str
	description: str
	execute: Callable[[Any], Awaitable[ToolResult]]
	input_schema: JSONSchema = field(default_factory=lambda: {"type": "object", "properties": {}})


@dataclass
class ToolCall:
	"""A tool invocation requested by a provider.

	`error` is set when the provider's arguments could not be decoded; the
	call is then answered with a failed result instead of being executed.
	"""
	id: str
	name: str
	input: Any = None
	error: Optional[str] = None


def find_tool(tools: Iterable[Tool], name: str) -> Optional[Tool]:
	for tool in tools:
		if tool.name == name:
			return tool
	return None


def tool_not_found(name: str) -> ToolResult:
	"""Failed result fed back to the provider for an unregistered tool."""
	return ToolResult(success=False, error=str(ToolNotFoundError(name)))


async def execute_tool(tool: Tool, input: Any) -> ToolResult:
	"""Invoke a tool, converting any exception into a failed ToolResult."""
	try:
		result = await tool.execute(input)
	except Exception as e:
		error = ToolExecutionError(tool.name, e)
		logger.warning(f"Tool {tool.name} raised: {error}")
		return ToolResult(success=False, error=str(error))

	if isinstance(result, ToolResult):
		return result
	if isinstance(result, dict):
		return ToolResult(
			success=bool(result.get("success", False)),
			output=result.get("output"),
			error=result.get("error"),
		)
	return ToolResult(success=True, output=result)
