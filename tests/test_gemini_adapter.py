"""Tests for the Gemini REST adapter using httpx.MockTransport."""

import json

import httpx
import pytest

from openwork.errors import ProviderRequestError
from openwork.plans.models import PlanStep
from openwork.providers.gemini_adapter import GEMINI_BASE_URL, GeminiAdapter
from openwork.providers.types import AdapterConfig, Message, MessageRole
from openwork.tools.base import Tool

from .helpers import make_tool


def candidate(*parts: dict) -> dict:
	return {"candidates": [{"content": {"role": "model", "parts": list(parts)}}]}


class Recorder:
	"""MockTransport handler that replays responses and records request bodies."""

	def __init__(self, *responses: httpx.Response):
		self.responses = list(responses)
		self.requests: list[httpx.Request] = []

	def __call__(self, request: httpx.Request) -> httpx.Response:
		self.requests.append(request)
		return self.responses.pop(0)

	def body(self, index: int) -> dict:
		return json.loads(self.requests[index].content)


def adapter_for(recorder: Recorder, **config) -> GeminiAdapter:
	client = httpx.AsyncClient(transport=httpx.MockTransport(recorder), base_url=GEMINI_BASE_URL)
	return GeminiAdapter(AdapterConfig(api_key="AIza-test", **config), http_client=client)


class TestGeminiComplete:
	@pytest.mark.asyncio
	async def test_joins_text_parts(self):
		recorder = Recorder(httpx.Response(200, json=candidate({"text": "Hello "}, {"text": "world"})))
		adapter = adapter_for(recorder, temperature=0.5)

		assert await adapter.complete("Hi") == "Hello world"

		request = recorder.requests[0]
		assert request.url.path.endswith("/models/gemini-2.5-pro:generateContent")
		assert request.headers["x-goog-api-key"] == "AIza-test"
		body = recorder.body(0)
		assert body["contents"] == [{"role": "user", "parts": [{"text": "Hi"}]}]
		assert body["generationConfig"] == {"maxOutputTokens": 4096, "temperature": 0.5}
		assert "tools" not in body

	@pytest.mark.asyncio
	async def test_no_candidates(self):
		adapter = adapter_for(Recorder(httpx.Response(200, json={"candidates": []})))
		assert await adapter.complete("Hi") == ""

	@pytest.mark.asyncio
	async def test_http_error_raises_provider_error(self):
		adapter = adapter_for(Recorder(httpx.Response(403, text="API key not valid")))

		with pytest.raises(ProviderRequestError, match="HTTP 403"):
			await adapter.complete("Hi")

	@pytest.mark.asyncio
	async def test_validate_credential(self):
		assert await adapter_for(Recorder(httpx.Response(200, json={}))).validate_credential()
		assert not await adapter_for(Recorder(httpx.Response(400, json={}))).validate_credential()


class TestGeminiChat:
	@pytest.mark.asyncio
	async def test_streams_sse_text(self):
		lines = [
			f"data: {json.dumps(candidate({'text': 'Hel'}))}",
			"",
			"data: {broken",
			f"data: {json.dumps(candidate({'text': 'lo'}))}",
		]
		recorder = Recorder(httpx.Response(200, text="\n".join(lines) + "\n"))
		adapter = adapter_for(recorder)

		chunks = [c async for c in adapter.chat([
			Message(role=MessageRole.USER, content="Hi"),
			Message(role=MessageRole.ASSISTANT, content="Hello"),
		])]

		assert [c.content for c in chunks if c.type == "text"] == ["Hel", "lo"]
		assert chunks[-1].type == "done"
		assert recorder.requests[0].url.params["alt"] == "sse"
		assert [c["role"] for c in recorder.body(0)["contents"]] == ["user", "model"]


class TestGeminiTools:
	def test_schema_drops_default(self):
		tool = Tool(
			name="search",
			description="Search",
			execute=None,  # type: ignore[arg-type]
			input_schema={
				"type": "object",
				"properties": {"limit": {"type": "integer", "default": 10}},
				"required": [],
			},
		)

		declaration = GeminiAdapter(AdapterConfig(api_key="k")).convert_tools([tool])[0]

		assert declaration["parameters"]["properties"]["limit"] == {"type": "integer"}
		assert declaration["parameters"]["required"] == []

	@pytest.mark.asyncio
	async def test_function_call_round_trip(self):
		recorder = Recorder(
			httpx.Response(200, json=candidate({"functionCall": {"name": "file_read", "args": {"path": "a.txt"}}})),
			httpx.Response(200, json=candidate({"text": "It says hi"})),
		)
		adapter = adapter_for(recorder)
		tool = make_tool("file_read", output="hi")

		result = await adapter.execute_step(PlanStep(id="s1", description="Read a.txt"), [tool], lambda p: None)

		assert result.success
		assert result.output == "It says hi"
		assert tool.calls == [{"path": "a.txt"}]

		first = recorder.body(0)
		assert first["tools"][0]["functionDeclarations"][0]["name"] == "file_read"

		contents = recorder.body(1)["contents"]
		assert contents[1] == {"role": "model", "parts": [{"functionCall": {"name": "file_read", "args": {"path": "a.txt"}}}]}
		assert contents[2] == {
			"role": "user",
			"parts": [{"functionResponse": {"name": "file_read", "response": {"success": True, "output": "hi"}}}],
		}
