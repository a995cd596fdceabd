"""Tests for the Ollama adapter and its text tool-call markers."""

import json

import httpx
import pytest

from openwork.errors import ProviderRequestError
from openwork.plans.models import PlanStep
from openwork.providers.ollama_adapter import DEFAULT_OLLAMA_HOST, OllamaAdapter, parse_tool_markers
from openwork.providers.types import AdapterConfig, Message, MessageRole

from .helpers import make_tool


class Recorder:
	def __init__(self, *responses: httpx.Response):
		self.responses = list(responses)
		self.requests: list[httpx.Request] = []

	def __call__(self, request: httpx.Request) -> httpx.Response:
		self.requests.append(request)
		return self.responses.pop(0)

	def body(self, index: int) -> dict:
		return json.loads(self.requests[index].content)


def generated(text: str) -> httpx.Response:
	return httpx.Response(200, json={"model": "llama3.3", "response": text, "done": True})


def adapter_for(recorder: Recorder) -> OllamaAdapter:
	client = httpx.AsyncClient(transport=httpx.MockTransport(recorder), base_url=DEFAULT_OLLAMA_HOST)
	return OllamaAdapter(AdapterConfig(), http_client=client)


class TestParseToolMarkers:
	def test_single_call(self):
		calls = parse_tool_markers('I will read it.\nTOOL: file_read({"path": "notes.txt"})')
		assert len(calls) == 1
		assert calls[0].name == "file_read"
		assert calls[0].input == {"path": "notes.txt"}
		assert calls[0].error is None

	def test_multiple_calls_in_order(self):
		text = 'TOOL: a({"x": 1})\nthen\nTOOL: b({"y": {"nested": [1, 2]}})'
		calls = parse_tool_markers(text)
		assert [c.name for c in calls] == ["a", "b"]
		assert calls[1].input == {"y": {"nested": [1, 2]}}
		assert calls[0].id != calls[1].id

	def test_empty_arguments(self):
		calls = parse_tool_markers("TOOL: list_files()")
		assert calls[0].input == {}

	def test_malformed_arguments_flagged(self):
		calls = parse_tool_markers("TOOL: file_read({path: notes.txt})")
		assert calls[0].input is None
		assert "Invalid arguments for tool file_read" in calls[0].error

	def test_no_markers(self):
		assert parse_tool_markers("DONE: nothing to do") == []


class TestOllamaAdapter:
	def test_needs_no_api_key(self):
		adapter = OllamaAdapter(AdapterConfig())
		assert adapter.is_configured()
		adapter.ensure_configured()

	def test_host_from_environment(self, monkeypatch):
		monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434/")
		assert OllamaAdapter(AdapterConfig()).host == "http://gpu-box:11434"
		assert OllamaAdapter(AdapterConfig(host="http://other:1")).host == "http://other:1"

	@pytest.mark.asyncio
	async def test_complete(self):
		recorder = Recorder(generated("Hello"))
		adapter = adapter_for(recorder)

		assert await adapter.complete("Hi") == "Hello"
		assert recorder.requests[0].url.path == "/api/generate"
		body = recorder.body(0)
		assert body["prompt"] == "Hi"
		assert body["stream"] is False
		assert body["options"]["num_predict"] == 4096

	@pytest.mark.asyncio
	async def test_http_error(self):
		adapter = adapter_for(Recorder(httpx.Response(404, text="model not found")))
		with pytest.raises(ProviderRequestError, match="HTTP 404"):
			await adapter.complete("Hi")

	@pytest.mark.asyncio
	async def test_list_local_models(self):
		recorder = Recorder(httpx.Response(200, json={"models": [{"name": "llama3.3:latest"}, {"name": "qwen2.5"}]}))
		assert await adapter_for(recorder).list_local_models() == ["llama3.3:latest", "qwen2.5"]

	@pytest.mark.asyncio
	async def test_chat_streams_ndjson(self):
		lines = [
			json.dumps({"message": {"content": "Hel"}, "done": False}),
			"",
			json.dumps({"message": {"content": "lo"}, "done": True}),
			json.dumps({"message": {"content": "ignored"}, "done": False}),
		]
		adapter = adapter_for(Recorder(httpx.Response(200, text="\n".join(lines))))

		chunks = [c async for c in adapter.chat([Message(role=MessageRole.USER, content="Hi")])]

		assert [c.content for c in chunks if c.type == "text"] == ["Hel", "lo"]
		assert chunks[-1].type == "done"

	@pytest.mark.asyncio
	async def test_step_uses_transcript(self):
		recorder = Recorder(
			generated('Reading first.\nTOOL: file_read({"path": "a.txt"})'),
			generated("DONE: the file says hi"),
		)
		adapter = adapter_for(recorder)
		tool = make_tool("file_read", output="hi")

		result = await adapter.execute_step(PlanStep(id="s1", description="Read a.txt"), [tool], lambda p: None)

		assert result.success
		assert result.iterations == 2
		assert tool.calls == [{"path": "a.txt"}]
		assert "DONE: the file says hi" in result.output

		second_prompt = recorder.body(1)["prompt"]
		assert "Task: Read a.txt" in second_prompt
		assert 'Tool file_read result: {"success": true, "output": "hi"}' in second_prompt
		assert second_prompt.endswith("Continue:")

	@pytest.mark.asyncio
	async def test_done_with_tool_call_finishes_after_running_it(self):
		recorder = Recorder(generated('TOOL: file_write({"path": "b.txt"})\nDONE: written'))
		adapter = adapter_for(recorder)
		tool = make_tool("file_write")

		result = await adapter.execute_step(PlanStep(id="s1", description="Write b.txt"), [tool], lambda p: None)

		assert result.success
		assert result.iterations == 1
		assert len(tool.calls) == 1
