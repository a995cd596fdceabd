"""OpenAI adapter with function calling."""

import json
import logging
from typing import Any, AsyncIterator, Optional, Sequence

from openai import AsyncOpenAI

from ..plans.models import PlanStep
from ..tools.base import Tool, ToolCall, ToolResult
from .base import BaseProviderAdapter
from .types import AdapterConfig, ChatChunk, Message, ProviderTurn

logger = logging.getLogger(__name__)

EXECUTE_SYSTEM_PROMPT = "You are an AI assistant that executes tasks using available tools."

# Reasoning models take max_completion_tokens and reject temperature
REASONING_MODEL_PREFIXES = ("o1", "o3", "o4", "gpt-5")


def is_reasoning_model(model: str) -> bool:
	return model.startswith(REASONING_MODEL_PREFIXES)


def _decode_arguments(name: str, arguments: Optional[str]) -> tuple[Any, Optional[str]]:
	if not arguments:
		return {}, None
	try:
		return json.loads(arguments), None
	except json.JSONDecodeError as e:
		return None, f"Invalid arguments for tool {name}: {e}"


class OpenAIAdapter(BaseProviderAdapter):
	"""Chat Completions API with tool_calls."""

	name = "openai"
	display_name = "OpenAI (GPT)"
	supported_models = [
		"gpt-5",
		"gpt-5-codex",
		"gpt-4o",
		"gpt-4-turbo",
		"o3",
		"o1",
	]
	default_model = "gpt-4o"

	def __init__(self, config: Optional[AdapterConfig] = None, client: Optional[AsyncOpenAI] = None):
		super().__init__(config)
		self._client = client

	@property
	def client(self) -> AsyncOpenAI:
		if self._client is None:
			self.ensure_configured()
			self._client = AsyncOpenAI(
				api_key=self.config.api_key,
				organization=self.config.organization,
			)
		return self._client

	def _token_limit(self, limit: int) -> dict[str, int]:
		if is_reasoning_model(self.model):
			return {"max_completion_tokens": limit}
		return {"max_tokens": limit}

	def _request_kwargs(self, **kwargs: Any) -> dict[str, Any]:
		params: dict[str, Any] = {"model": self.model, **self._token_limit(self.config.max_tokens)}
		if self.config.temperature is not None and not is_reasoning_model(self.model):
			params["temperature"] = self.config.temperature
		params.update({k: v for k, v in kwargs.items() if v is not None})
		return params

	async def validate_credential(self) -> bool:
		try:
			await self.client.chat.completions.create(
				model=self.model,
				messages=[{"role": "user", "content": "Hello"}],
				**self._token_limit(10),
			)
			return True
		except Exception as e:
			logger.info(f"OpenAI credential validation failed: {e}")
			return False

	async def chat(self, messages: Sequence[Message], tools: Optional[Sequence[Tool]] = None) -> AsyncIterator[ChatChunk]:
		stream = await self.client.chat.completions.create(
			**self._request_kwargs(
				messages=[{"role": m.role.value, "content": m.content} for m in messages],
				tools=self.convert_tools(tools) if tools else None,
				stream=True,
			)
		)
		async for chunk in stream:
			if not chunk.choices:
				continue
			content = chunk.choices[0].delta.content
			if content:
				yield ChatChunk(type="text", content=content)
		yield ChatChunk(type="done")

	async def complete(self, prompt: str) -> str:
		response = await self.client.chat.completions.create(
			**self._request_kwargs(messages=[{"role": "user", "content": prompt}])
		)
		if not response.choices:
			return ""
		return response.choices[0].message.content or ""

	def convert_tools(self, tools: Sequence[Tool]) -> list[dict[str, Any]]:
		return [
			{
				"type": "function",
				"function": {
					"name": tool.name,
					"description": tool.description,
					"parameters": tool.input_schema,
				},
			}
			for tool in tools
		]

	def _start_conversation(self, step: PlanStep, tools: Sequence[Tool]) -> list[dict[str, Any]]:
		return [
			{"role": "system", "content": EXECUTE_SYSTEM_PROMPT},
			{"role": "user", "content": f"Execute this step: {step.description}"},
		]

	async def _send_turn(self, conversation: list[dict[str, Any]], tools: Sequence[Tool]) -> ProviderTurn:
		response = await self.client.chat.completions.create(
			**self._request_kwargs(
				messages=conversation,
				tools=self.convert_tools(tools) if tools else None,
			)
		)
		turn = ProviderTurn()
		if not response.choices:
			return turn

		message = response.choices[0].message
		if message.content:
			turn.text.append(message.content)

		assistant: dict[str, Any] = {"role": "assistant", "content": message.content}
		raw_calls = []
		for tool_call in message.tool_calls or []:
			name = tool_call.function.name
			arguments, error = _decode_arguments(name, tool_call.function.arguments)
			turn.tool_calls.append(ToolCall(id=tool_call.id, name=name, input=arguments, error=error))
			raw_calls.append({
				"id": tool_call.id,
				"type": "function",
				"function": {"name": name, "arguments": tool_call.function.arguments or "{}"},
			})
		if raw_calls:
			assistant["tool_calls"] = raw_calls
		turn.raw = assistant
		return turn

	def _record_turn(
		self,
		conversation: list[dict[str, Any]],
		turn: ProviderTurn,
		results: list[tuple[ToolCall, ToolResult]],
	) -> None:
		conversation.append(turn.raw)
		for call, result in results:
			conversation.append({
				"role": "tool",
				"tool_call_id": call.id,
				"content": result.to_json(),
			})
