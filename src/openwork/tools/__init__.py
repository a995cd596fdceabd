"""Tool contract consumed by the orchestration core."""

from .base import Tool, ToolCall, ToolResult, execute_tool, find_tool, tool_not_found

__all__ = [
	"Tool",
	"ToolCall",
	"ToolResult",
	"execute_tool",
	"find_tool",
	"tool_not_found",
]
