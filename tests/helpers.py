"""Shared test fakes and builders for openwork tests."""

import asyncio
import json
from typing import Any, Optional, Sequence

from openwork.plans.models import PlanStep
from openwork.providers.base import BaseProviderAdapter
from openwork.providers.types import AdapterConfig, AgentMode, ChatChunk, Message, ProviderTurn
from openwork.tasks.models import Task, TaskTree
from openwork.tools.base import Tool, ToolCall, ToolResult


class ScriptedAdapter(BaseProviderAdapter):
	"""Provider adapter that replays scripted completions and step turns.

	completions: strings (or exceptions to raise) returned by complete(), in order.
	turns: ProviderTurn objects (or exceptions) returned by _send_turn(), in order.
	When turns run out, each turn answers with plain text and no tool calls.
	"""

	name = "scripted"
	display_name = "Scripted"
	supported_models = ["scripted-1"]
	default_model = "scripted-1"

	def __init__(
		self,
		completions: Optional[list[Any]] = None,
		turns: Optional[list[Any]] = None,
		mode: AgentMode = AgentMode.EXECUTE,
		config: Optional[AdapterConfig] = None,
		gate: Optional[asyncio.Event] = None,
	):
		super().__init__(config or AdapterConfig(api_key="test-key", mode=mode))
		self.completions = list(completions or [])
		self.turns = list(turns or [])
		self.gate = gate
		self.prompts: list[str] = []
		self.sent: list[list[str]] = []
		self.recorded: list[list[tuple[ToolCall, ToolResult]]] = []

	async def validate_credential(self) -> bool:
		return True

	async def chat(self, messages: Sequence[Message], tools: Optional[Sequence[Tool]] = None):
		for message in messages:
			yield ChatChunk(type="text", content=message.content)
		yield ChatChunk(type="done")

	async def complete(self, prompt: str) -> str:
		self.prompts.append(prompt)
		if not self.completions:
			return ""
		item = self.completions.pop(0)
		if isinstance(item, Exception):
			raise item
		return item

	def convert_tools(self, tools: Sequence[Tool]) -> list[str]:
		return [tool.name for tool in tools]

	def _start_conversation(self, step: PlanStep, tools: Sequence[Tool]) -> list[str]:
		return [step.description]

	async def _send_turn(self, conversation: list[str], tools: Sequence[Tool]) -> ProviderTurn:
		self.sent.append(list(conversation))
		if self.gate is not None:
			await self.gate.wait()
		if not self.turns:
			return ProviderTurn(text=[f"Finished: {conversation[0]}"])
		item = self.turns.pop(0)
		if isinstance(item, Exception):
			raise item
		return item

	def _record_turn(
		self,
		conversation: list[str],
		turn: ProviderTurn,
		results: list[tuple[ToolCall, ToolResult]],
	) -> None:
		self.recorded.append(results)
		for call, result in results:
			conversation.append(f"{call.name}: {result.to_json()}")


class AlwaysToolAdapter(ScriptedAdapter):
	"""Requests the same tool on every turn and never finishes on its own."""

	def __init__(self, tool_name: str = "echo", **kwargs: Any):
		super().__init__(**kwargs)
		self.tool_name = tool_name

	async def _send_turn(self, conversation: list[str], tools: Sequence[Tool]) -> ProviderTurn:
		self.sent.append(list(conversation))
		n = len(self.sent)
		return ProviderTurn(
			text=[f"turn {n}"],
			tool_calls=[ToolCall(id=f"call_{n}", name=self.tool_name, input={"n": n})],
		)


def make_tool(name: str = "echo", output: Any = "ok", error: Optional[Exception] = None) -> Tool:
	"""Tool that records its inputs and returns output, or raises error."""
	calls: list[Any] = []

	async def execute(input: Any) -> ToolResult:
		calls.append(input)
		if error is not None:
			raise error
		return ToolResult(success=True, output=output)

	tool = Tool(name=name, description=f"The {name} tool", execute=execute)
	tool.calls = calls  # type: ignore[attr-defined]
	return tool


def tool_turn(name: str, input: Any = None, text: str = "", call_id: str = "call_1") -> ProviderTurn:
	return ProviderTurn(
		text=[text] if text else [],
		tool_calls=[ToolCall(id=call_id, name=name, input=input or {})],
	)


def text_turn(text: str) -> ProviderTurn:
	return ProviderTurn(text=[text])


def make_tree(*child_descriptions: str, root: str = "Root task") -> TaskTree:
	"""A root task with one leaf child per description."""
	tree = TaskTree(Task(description=root))
	for description in child_descriptions:
		tree.add(Task(description=description), parent_id=tree.root_id)
	return tree


def plan_json(*descriptions: str, goal: str = "Do the thing") -> str:
	"""Provider-style plan creation response wrapped in prose."""
	plan = {
		"goal": goal,
		"steps": [
			{"id": f"step_{i}", "description": d, "toolsNeeded": [], "dependencies": []}
			for i, d in enumerate(descriptions, start=1)
		],
		"estimatedComplexity": "medium",
		"requiredApprovals": [],
	}
	return f"Here is the plan:\n```json\n{json.dumps(plan)}\n```"


def fenced(event: dict) -> str:
	return f"```json\n{json.dumps(event)}\n```"
