"""Gemini adapter over the Generative Language REST API."""

import json
import logging
from typing import Any, AsyncIterator, Optional, Sequence

import httpx

from ..errors import ProviderRequestError
from ..plans.models import PlanStep
from ..tools.base import Tool, ToolCall, ToolResult
from .base import PLAN_SCHEMA_HINT, BaseProviderAdapter, describe_tools
from .types import AdapterConfig, ChatChunk, Message, MessageRole, PlanContext, ProviderTurn

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

# Keys the function-declaration schema dialect rejects
_UNSUPPORTED_SCHEMA_KEYS = {"default"}


def _gemini_schema(schema: Any) -> Any:
	if isinstance(schema, dict):
		return {
			key: _gemini_schema(value)
			for key, value in schema.items()
			if key not in _UNSUPPORTED_SCHEMA_KEYS
		}
	if isinstance(schema, list):
		return [_gemini_schema(item) for item in schema]
	return schema


class GeminiAdapter(BaseProviderAdapter):
	"""
	Gemini over REST.

	Function declarations are sent with every step turn, but models are
	free to answer in plain text; a turn without functionCall parts ends
	the step.
	"""

	name = "gemini"
	display_name = "Gemini (Google)"
	supported_models = [
		"gemini-2.5-pro",
		"gemini-2.5-flash",
		"gemini-2.0-flash",
	]
	default_model = "gemini-2.5-pro"

	def __init__(self, config: Optional[AdapterConfig] = None, http_client: Optional[httpx.AsyncClient] = None):
		super().__init__(config)
		self._http = http_client

	@property
	def http(self) -> httpx.AsyncClient:
		if self._http is None:
			self.ensure_configured()
			self._http = httpx.AsyncClient(
				base_url=self.config.host or GEMINI_BASE_URL,
				timeout=httpx.Timeout(120.0, connect=10.0),
			)
		return self._http

	async def aclose(self) -> None:
		if self._http is not None:
			await self._http.aclose()

	@property
	def _headers(self) -> dict[str, str]:
		return {"x-goog-api-key": self.config.api_key or ""}

	def _generation_config(self) -> dict[str, Any]:
		config: dict[str, Any] = {"maxOutputTokens": self.config.max_tokens}
		if self.config.temperature is not None:
			config["temperature"] = self.config.temperature
		return config

	def _body(self, contents: list[dict[str, Any]], tools: Optional[Sequence[Tool]] = None) -> dict[str, Any]:
		body: dict[str, Any] = {
			"contents": contents,
			"generationConfig": self._generation_config(),
		}
		if tools:
			body["tools"] = [{"functionDeclarations": self.convert_tools(tools)}]
		return body

	async def _generate(self, body: dict[str, Any]) -> dict[str, Any]:
		try:
			response = await self.http.post(
				f"/models/{self.model}:generateContent",
				json=body,
				headers=self._headers,
			)
			response.raise_for_status()
		except httpx.HTTPStatusError as e:
			raise ProviderRequestError(f"Gemini: HTTP {e.response.status_code} - {e.response.text}") from e
		except httpx.HTTPError as e:
			raise ProviderRequestError(f"Gemini: request failed: {e}") from e

		try:
			return response.json()
		except ValueError as e:
			raise ProviderRequestError(f"Gemini: invalid response - {e}") from e

	@staticmethod
	def _parts(data: dict[str, Any]) -> list[dict[str, Any]]:
		candidates = data.get("candidates") or []
		if not candidates:
			return []
		content = candidates[0].get("content") or {}
		return content.get("parts") or []

	async def validate_credential(self) -> bool:
		try:
			response = await self.http.get(f"/models/{self.model}", headers=self._headers)
			return response.status_code == 200
		except Exception as e:
			logger.info(f"Gemini credential validation failed: {e}")
			return False

	async def chat(self, messages: Sequence[Message], tools: Optional[Sequence[Tool]] = None) -> AsyncIterator[ChatChunk]:
		contents = [
			{
				"role": "model" if m.role == MessageRole.ASSISTANT else "user",
				"parts": [{"text": m.content}],
			}
			for m in messages
		]
		async with self.http.stream(
			"POST",
			f"/models/{self.model}:streamGenerateContent",
			params={"alt": "sse"},
			json=self._body(contents, tools),
			headers=self._headers,
		) as response:
			if response.status_code >= 400:
				await response.aread()
				raise ProviderRequestError(f"Gemini: HTTP {response.status_code} - {response.text}")
			async for line in response.aiter_lines():
				if not line.startswith("data:"):
					continue
				try:
					data = json.loads(line[len("data:"):].strip())
				except json.JSONDecodeError:
					logger.debug(f"Skipping malformed Gemini stream line: {line[:80]}")
					continue
				for part in self._parts(data):
					if part.get("text"):
						yield ChatChunk(type="text", content=part["text"])
		yield ChatChunk(type="done")

	async def complete(self, prompt: str) -> str:
		data = await self._generate(self._body([{"role": "user", "parts": [{"text": prompt}]}]))
		return "".join(part.get("text", "") for part in self._parts(data))

	def build_plan_prompt(self, task: str, tools: Sequence[Tool], context: Optional[PlanContext]) -> str:
		context_info = f"\n{context.describe()}" if context else ""
		return (
			"You are an AI assistant that creates execution plans for tasks.\n\n"
			f"Available tools:\n{describe_tools(tools)}\n"
			f"{context_info}\n\n"
			f"User task: {task}\n\n"
			f"Create a JSON execution plan:\n{PLAN_SCHEMA_HINT}\n\n"
			"Output only the JSON, no other text."
		)

	def convert_tools(self, tools: Sequence[Tool]) -> list[dict[str, Any]]:
		return [
			{
				"name": tool.name,
				"description": tool.description,
				"parameters": _gemini_schema(tool.input_schema),
			}
			for tool in tools
		]

	def _start_conversation(self, step: PlanStep, tools: Sequence[Tool]) -> list[dict[str, Any]]:
		return [
			{
				"role": "user",
				"parts": [{"text": f"Execute this step: {step.description}\n\nUse the available tools as needed."}],
			}
		]

	async def _send_turn(self, conversation: list[dict[str, Any]], tools: Sequence[Tool]) -> ProviderTurn:
		data = await self._generate(self._body(conversation, tools))
		parts = self._parts(data)
		turn = ProviderTurn(raw=parts)
		for index, part in enumerate(parts):
			if part.get("text"):
				turn.text.append(part["text"])
			elif part.get("functionCall"):
				call = part["functionCall"]
				turn.tool_calls.append(ToolCall(
					id=call.get("id") or f"{call.get('name', 'call')}_{len(conversation)}_{index}",
					name=call.get("name", ""),
					input=call.get("args") or {},
				))
		return turn

	def _record_turn(
		self,
		conversation: list[dict[str, Any]],
		turn: ProviderTurn,
		results: list[tuple[ToolCall, ToolResult]],
	) -> None:
		conversation.append({"role": "model", "parts": turn.raw})
		conversation.append({
			"role": "user",
			"parts": [
				{"functionResponse": {"name": call.name, "response": json.loads(result.to_json())}}
				for call, result in results
			],
		})
