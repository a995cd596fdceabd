"""
Ollama adapter for locally hosted models.

Most local models have no native tool calling, so steps run as a
ReAct-style transcript: the model writes `TOOL: name({...})` to act and
`DONE: ...` to finish, and tool results are appended to the transcript.
"""

import json
import logging
import os
import re
from typing import Any, AsyncIterator, Optional, Sequence

import httpx

from ..errors import ProviderRequestError
from ..plans.models import PlanStep
from ..tools.base import Tool, ToolCall, ToolResult
from .base import BaseProviderAdapter, describe_tools
from .types import AdapterConfig, ChatChunk, Message, PlanContext, ProviderTurn

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_HOST = "http://localhost:11434"

TOOL_MARKER = re.compile(r"TOOL:\s*(\w+)\s*\(")
DONE_MARKER = "DONE:"

_decoder = json.JSONDecoder()


def parse_tool_markers(response: str) -> list[ToolCall]:
	"""Extract every `TOOL: name({...})` invocation, in order."""
	calls: list[ToolCall] = []
	for index, match in enumerate(TOOL_MARKER.finditer(response)):
		name = match.group(1)
		args_start = match.end()
		rest = response[args_start:].lstrip()
		call_id = f"{name}_{index + 1}"
		if rest.startswith(")"):
			calls.append(ToolCall(id=call_id, name=name, input={}))
			continue
		try:
			args, _ = _decoder.raw_decode(rest)
		except json.JSONDecodeError as e:
			calls.append(ToolCall(id=call_id, name=name, error=f"Invalid arguments for tool {name}: {e}"))
			continue
		calls.append(ToolCall(id=call_id, name=name, input=args))
	return calls


class OllamaAdapter(BaseProviderAdapter):
	"""Local models through the Ollama HTTP API."""

	name = "ollama"
	display_name = "Ollama (Local)"
	supported_models = [
		"llama3.3",
		"llama3.2",
		"qwen2.5",
		"deepseek-r1",
		"codellama",
		"mistral",
		"mixtral",
	]
	default_model = "llama3.3"
	requires_api_key = False

	def __init__(self, config: Optional[AdapterConfig] = None, http_client: Optional[httpx.AsyncClient] = None):
		super().__init__(config)
		self.host = (self.config.host or os.getenv("OLLAMA_HOST") or DEFAULT_OLLAMA_HOST).rstrip("/")
		self._http = http_client

	@property
	def http(self) -> httpx.AsyncClient:
		if self._http is None:
			self._http = httpx.AsyncClient(
				base_url=self.host,
				timeout=httpx.Timeout(300.0, connect=5.0),
			)
		return self._http

	async def aclose(self) -> None:
		if self._http is not None:
			await self._http.aclose()

	def _options(self) -> dict[str, Any]:
		options: dict[str, Any] = {"num_predict": self.config.max_tokens}
		if self.config.temperature is not None:
			options["temperature"] = self.config.temperature
		return options

	async def validate_credential(self) -> bool:
		try:
			response = await self.http.get("/api/tags")
			return response.status_code == 200
		except Exception as e:
			logger.info(f"Ollama not reachable at {self.host}: {e}")
			return False

	async def list_local_models(self) -> list[str]:
		"""Names of models pulled into the local Ollama server."""
		try:
			response = await self.http.get("/api/tags")
			response.raise_for_status()
			return [m["name"] for m in response.json().get("models", []) if "name" in m]
		except (httpx.HTTPError, ValueError, KeyError) as e:
			logger.info(f"Could not list Ollama models: {e}")
			return []

	async def chat(self, messages: Sequence[Message], tools: Optional[Sequence[Tool]] = None) -> AsyncIterator[ChatChunk]:
		# Tool support is model-dependent, so tools are not sent here
		payload = {
			"model": self.model,
			"messages": [{"role": m.role.value, "content": m.content} for m in messages],
			"stream": True,
			"options": self._options(),
		}
		async with self.http.stream("POST", "/api/chat", json=payload) as response:
			if response.status_code >= 400:
				await response.aread()
				raise ProviderRequestError(f"Ollama: HTTP {response.status_code} - {response.text}")
			async for line in response.aiter_lines():
				if not line.strip():
					continue
				try:
					data = json.loads(line)
				except json.JSONDecodeError:
					logger.debug(f"Skipping malformed Ollama stream line: {line[:80]}")
					continue
				content = (data.get("message") or {}).get("content")
				if content:
					yield ChatChunk(type="text", content=content)
				if data.get("done"):
					break
		yield ChatChunk(type="done")

	async def complete(self, prompt: str) -> str:
		payload = {
			"model": self.model,
			"prompt": prompt,
			"stream": False,
			"options": self._options(),
		}
		try:
			response = await self.http.post("/api/generate", json=payload)
			response.raise_for_status()
		except httpx.ConnectError as e:
			raise ProviderRequestError(f"Ollama: could not connect to {self.host}: {e}") from e
		except httpx.TimeoutException as e:
			raise ProviderRequestError(f"Ollama: timeout calling {self.host}: {e}") from e
		except httpx.HTTPStatusError as e:
			raise ProviderRequestError(f"Ollama: HTTP {e.response.status_code} - {e.response.text}") from e

		try:
			return response.json().get("response", "")
		except ValueError as e:
			raise ProviderRequestError(f"Ollama: invalid response - {e}") from e

	def build_plan_prompt(self, task: str, tools: Sequence[Tool], context: Optional[PlanContext]) -> str:
		context_info = f"\n{context.describe()}" if context else ""
		return (
			"You are an AI that creates execution plans. Output only valid JSON.\n\n"
			f"Available tools:\n{describe_tools(tools)}\n"
			f"{context_info}\n\n"
			f"Task: {task}\n\n"
			"Create a plan as JSON:\n"
			"{\n"
			'  "goal": "description",\n'
			'  "steps": [{"id": "step_1", "description": "...", "toolsNeeded": [], "dependencies": []}],\n'
			'  "estimatedComplexity": "medium",\n'
			'  "requiredApprovals": []\n'
			"}\n\n"
			"JSON only:"
		)

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

	def _start_conversation(self, step: PlanStep, tools: Sequence[Tool]) -> list[str]:
		tool_list = "\n".join(f"{t.name}: {t.description}" for t in tools) or "(none)"
		return [
			"You are executing a task step by step.\n\n"
			'Available tools (call with TOOL: tool_name({"arg": "value"})):\n'
			f"{tool_list}\n\n"
			f"Task: {step.description}\n\n"
			"Think through what you need to do, then either:\n"
			'1. Use a tool: TOOL: tool_name({"arg": "value"})\n'
			"2. Complete with: DONE: your final response\n\n"
			"Begin:"
		]

	async def _send_turn(self, conversation: list[str], tools: Sequence[Tool]) -> ProviderTurn:
		response = await self.complete("".join(conversation))
		turn = ProviderTurn(raw=response)
		if response.strip():
			turn.text.append(response.strip())
		turn.tool_calls = parse_tool_markers(response)
		turn.finished = DONE_MARKER in response
		return turn

	def _record_turn(
		self,
		conversation: list[str],
		turn: ProviderTurn,
		results: list[tuple[ToolCall, ToolResult]],
	) -> None:
		conversation.append(f"\n\n{turn.raw}")
		for call, result in results:
			conversation.append(f"\n\nTool {call.name} result: {result.to_json()}")
		conversation.append("\n\nContinue:")
