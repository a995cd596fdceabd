"""Tests for the Claude adapter against a stubbed Anthropic client."""

import copy
from types import SimpleNamespace

import pytest

from openwork.errors import ConfigurationError
from openwork.plans.models import PlanStep
from openwork.providers.claude_adapter import ClaudeAdapter
from openwork.providers.types import AdapterConfig, Message, MessageRole

from .helpers import make_tool


def text_block(text: str):
	return SimpleNamespace(type="text", text=text)


def tool_use_block(call_id: str, name: str, input: dict):
	return SimpleNamespace(type="tool_use", id=call_id, name=name, input=input)


class FakeStream:
	def __init__(self, chunks):
		self._chunks = chunks

	async def __aenter__(self):
		return self

	async def __aexit__(self, *exc):
		return False

	@property
	async def text_stream(self):
		for chunk in self._chunks:
			yield chunk


class FakeMessages:
	def __init__(self, responses=None, stream_chunks=None):
		self.responses = list(responses or [])
		self.stream_chunks = stream_chunks or []
		self.requests = []

	async def create(self, **kwargs):
		self.requests.append(copy.deepcopy(kwargs))
		item = self.responses.pop(0)
		if isinstance(item, Exception):
			raise item
		return SimpleNamespace(content=item)

	def stream(self, **kwargs):
		self.requests.append(copy.deepcopy(kwargs))
		return FakeStream(self.stream_chunks)


def adapter_with(messages: FakeMessages, **config) -> ClaudeAdapter:
	client = SimpleNamespace(messages=messages)
	return ClaudeAdapter(AdapterConfig(api_key="sk-ant-test", **config), client=client)


class TestClaudeBasics:
	def test_defaults(self):
		adapter = ClaudeAdapter(AdapterConfig(api_key="k"))
		assert adapter.model == "claude-sonnet-4-20250514"
		assert adapter.model in adapter.supported_models

	def test_client_requires_api_key(self):
		adapter = ClaudeAdapter(AdapterConfig())
		with pytest.raises(ConfigurationError):
			adapter.client

	def test_convert_tools(self):
		adapter = ClaudeAdapter(AdapterConfig(api_key="k"))
		tool = make_tool("file_read")

		converted = adapter.convert_tools([tool])

		assert converted == [{
			"name": "file_read",
			"description": "The file_read tool",
			"input_schema": {"type": "object", "properties": {}},
		}]

	@pytest.mark.asyncio
	async def test_complete_returns_first_text_block(self):
		messages = FakeMessages(responses=[[tool_use_block("t", "x", {}), text_block("Hello there")]])
		adapter = adapter_with(messages, temperature=0.2)

		assert await adapter.complete("Hi") == "Hello there"
		request = messages.requests[0]
		assert request["messages"] == [{"role": "user", "content": "Hi"}]
		assert request["max_tokens"] == 4096
		assert request["temperature"] == 0.2

	@pytest.mark.asyncio
	async def test_validate_credential_false_on_error(self):
		adapter = adapter_with(FakeMessages(responses=[RuntimeError("401 invalid x-api-key")]))
		assert await adapter.validate_credential() is False

	@pytest.mark.asyncio
	async def test_validate_credential_true(self):
		adapter = adapter_with(FakeMessages(responses=[[text_block("hi")]]))
		assert await adapter.validate_credential() is True

	@pytest.mark.asyncio
	async def test_chat_streams_text_then_done(self):
		messages = FakeMessages(stream_chunks=["Hel", "", "lo"])
		adapter = adapter_with(messages)

		chunks = [c async for c in adapter.chat([
			Message(role=MessageRole.SYSTEM, content="Be brief"),
			Message(role=MessageRole.USER, content="Hi"),
		])]

		assert [(c.type, c.content) for c in chunks] == [("text", "Hel"), ("text", "lo"), ("done", None)]
		assert messages.requests[0]["system"] == "Be brief"
		assert messages.requests[0]["messages"] == [{"role": "user", "content": "Hi"}]


class TestClaudeStepLoop:
	@pytest.mark.asyncio
	async def test_tool_use_round_trip(self):
		messages = FakeMessages(responses=[
			[text_block("Reading"), tool_use_block("toolu_1", "file_read", {"path": "a.txt"})],
			[text_block("The file says hi")],
		])
		adapter = adapter_with(messages)
		tool = make_tool("file_read", output="hi")

		result = await adapter.execute_step(PlanStep(id="s1", description="Read a.txt"), [tool], lambda p: None)

		assert result.success
		assert result.output == "Reading\nThe file says hi"
		assert tool.calls == [{"path": "a.txt"}]

		first = messages.requests[0]
		assert "Execute this step: Read a.txt" in first["messages"][0]["content"]
		assert first["tools"][0]["name"] == "file_read"
		assert "system" in first

		followup = messages.requests[1]["messages"]
		assert followup[1] == {
			"role": "assistant",
			"content": [
				{"type": "text", "text": "Reading"},
				{"type": "tool_use", "id": "toolu_1", "name": "file_read", "input": {"path": "a.txt"}},
			],
		}
		assert followup[2]["role"] == "user"
		assert followup[2]["content"] == [{
			"type": "tool_result",
			"tool_use_id": "toolu_1",
			"content": '{"success": true, "output": "hi"}',
			"is_error": False,
		}]

	@pytest.mark.asyncio
	async def test_missing_tool_marked_as_error(self):
		messages = FakeMessages(responses=[
			[tool_use_block("toolu_1", "browser_click", {})],
			[text_block("ok")],
		])
		adapter = adapter_with(messages)

		await adapter.execute_step(PlanStep(id="s1", description="Click"), [], lambda p: None)

		tool_result = messages.requests[1]["messages"][2]["content"][0]
		assert tool_result["is_error"] is True
		assert "Tool not found: browser_click" in tool_result["content"]
		assert "tools" not in messages.requests[0]
