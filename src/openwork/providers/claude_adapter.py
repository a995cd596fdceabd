"""Claude (Anthropic) adapter with native tool use."""

import logging
from typing import Any, AsyncIterator, Optional, Sequence

from anthropic import AsyncAnthropic

from ..plans.models import PlanStep
from ..tools.base import Tool, ToolCall, ToolResult
from .base import BaseProviderAdapter
from .types import AdapterConfig, ChatChunk, Message, MessageRole, ProviderTurn

logger = logging.getLogger(__name__)

EXECUTE_SYSTEM_PROMPT = """You are an AI assistant that executes tasks step by step.

You have access to various tools to help complete the task. Use them as needed.
Be thorough but efficient. Report your progress clearly.

If you encounter an error, explain what went wrong and suggest solutions."""


class ClaudeAdapter(BaseProviderAdapter):
	"""Primary adapter: Claude messages API with tool_use blocks."""

	name = "claude"
	display_name = "Claude (Anthropic)"
	supported_models = [
		"claude-opus-4-5-20251101",
		"claude-sonnet-4-20250514",
		"claude-haiku-3-5-20241022",
		"claude-3-5-sonnet-20241022",
	]
	default_model = "claude-sonnet-4-20250514"

	def __init__(self, config: Optional[AdapterConfig] = None, client: Optional[AsyncAnthropic] = None):
		super().__init__(config)
		self._client = client

	@property
	def client(self) -> AsyncAnthropic:
		if self._client is None:
			self.ensure_configured()
			self._client = AsyncAnthropic(api_key=self.config.api_key)
		return self._client

	def _request_kwargs(self, **kwargs: Any) -> dict[str, Any]:
		params: dict[str, Any] = {
			"model": self.model,
			"max_tokens": self.config.max_tokens,
		}
		if self.config.temperature is not None:
			params["temperature"] = self.config.temperature
		params.update({k: v for k, v in kwargs.items() if v is not None})
		return params

	async def validate_credential(self) -> bool:
		try:
			await self.client.messages.create(
				model=self.model,
				max_tokens=10,
				messages=[{"role": "user", "content": "Hello"}],
			)
			return True
		except Exception as e:
			logger.info(f"Claude credential validation failed: {e}")
			return False

	async def chat(self, messages: Sequence[Message], tools: Optional[Sequence[Tool]] = None) -> AsyncIterator[ChatChunk]:
		system = "\n\n".join(m.content for m in messages if m.role == MessageRole.SYSTEM) or None
		anthropic_messages = [
			{"role": "assistant" if m.role == MessageRole.ASSISTANT else "user", "content": m.content}
			for m in messages
			if m.role != MessageRole.SYSTEM
		]
		params = self._request_kwargs(
			messages=anthropic_messages,
			system=system,
			tools=self.convert_tools(tools) if tools else None,
		)
		async with self.client.messages.stream(**params) as stream:
			async for text in stream.text_stream:
				if text:
					yield ChatChunk(type="text", content=text)
		yield ChatChunk(type="done")

	async def complete(self, prompt: str) -> str:
		response = await self.client.messages.create(
			**self._request_kwargs(messages=[{"role": "user", "content": prompt}])
		)
		for block in response.content:
			if block.type == "text":
				return block.text
		return ""

	def convert_tools(self, tools: Sequence[Tool]) -> list[dict[str, Any]]:
		return [
			{
				"name": tool.name,
				"description": tool.description,
				"input_schema": tool.input_schema,
			}
			for tool in tools
		]

	def _start_conversation(self, step: PlanStep, tools: Sequence[Tool]) -> list[dict[str, Any]]:
		return [
			{
				"role": "user",
				"content": (
					f"Execute this step: {step.description}\n\n"
					"If you need to use tools, use them. When the step is complete, summarize what was done."
				),
			}
		]

	async def _send_turn(self, conversation: list[dict[str, Any]], tools: Sequence[Tool]) -> ProviderTurn:
		response = await self.client.messages.create(
			**self._request_kwargs(
				system=EXECUTE_SYSTEM_PROMPT,
				messages=conversation,
				tools=self.convert_tools(tools) if tools else None,
			)
		)

		turn = ProviderTurn(raw=[])
		for block in response.content:
			if block.type == "text":
				turn.text.append(block.text)
				turn.raw.append({"type": "text", "text": block.text})
			elif block.type == "tool_use":
				turn.tool_calls.append(ToolCall(id=block.id, name=block.name, input=block.input))
				turn.raw.append({"type": "tool_use", "id": block.id, "name": block.name, "input": block.input})
		return turn

	def _record_turn(
		self,
		conversation: list[dict[str, Any]],
		turn: ProviderTurn,
		results: list[tuple[ToolCall, ToolResult]],
	) -> None:
		conversation.append({"role": "assistant", "content": turn.raw})
		conversation.append({
			"role": "user",
			"content": [
				{
					"type": "tool_result",
					"tool_use_id": call.id,
					"content": result.to_json(),
					"is_error": not result.success,
				}
				for call, result in results
			],
		})
