"""
Structured-output extractor.

Plan-mode providers embed JSON events in free text, either in ```json
fences or inline. extract_events() finds every candidate, validates it
against the event schema for its `type`, and silently drops anything
that does not validate.
"""

import json
import logging
import re
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

EVENT_TYPES = ("clarification", "plan", "progress", "artifact")

FENCED_JSON = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)

_decoder = json.JSONDecoder()


class _EventModel(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ClarificationOption(_EventModel):
	"""One selectable answer to a clarification question."""
	id: str
	label: str
	description: str = ""
	shortcut: Optional[str] = None


class ClarificationEvent(_EventModel):
	type: Literal["clarification"]
	question: str
	options: list[ClarificationOption] = Field(default_factory=list)
	allow_custom: bool = Field(default=True, alias="allowCustom")
	allow_skip: bool = Field(default=True, alias="allowSkip")


class ProposedStep(_EventModel):
	id: str
	label: str
	order: float = 0


class EstimatedArtifact(_EventModel):
	type: str
	name: str
	description: str = ""


class PlanEvent(_EventModel):
	type: Literal["plan"]
	title: str
	steps: list[ProposedStep]
	estimated_artifacts: list[EstimatedArtifact] = Field(default_factory=list, alias="estimatedArtifacts")


class ProgressEvent(_EventModel):
	type: Literal["progress"]
	step_id: str = Field(alias="stepId")
	status: Literal["pending", "in_progress", "completed", "failed"]
	message: str = ""


class ArtifactPayload(_EventModel):
	id: Optional[str] = None
	type: str
	name: str
	path: Optional[str] = None
	url: Optional[str] = None
	preview: Optional[str] = None


class ArtifactEvent(_EventModel):
	type: Literal["artifact"]
	artifact: ArtifactPayload


StructuredEvent = Annotated[
	Union[ClarificationEvent, PlanEvent, ProgressEvent, ArtifactEvent],
	Field(discriminator="type"),
]

_event_adapter: TypeAdapter = TypeAdapter(StructuredEvent)


def _validate(candidate: object) -> Optional[StructuredEvent]:
	if not isinstance(candidate, dict) or candidate.get("type") not in EVENT_TYPES:
		return None
	try:
		return _event_adapter.validate_python(candidate)
	except ValidationError as e:
		logger.debug(f"Dropping invalid {candidate.get('type')} block: {e.error_count()} validation error(s)")
		return None


def _fenced_events(text: str) -> tuple[list[StructuredEvent], list[tuple[int, int]]]:
	events: list[StructuredEvent] = []
	spans: list[tuple[int, int]] = []
	for match in FENCED_JSON.finditer(text):
		spans.append(match.span())
		body = match.group(1).strip()
		try:
			value = json.loads(body)
		except json.JSONDecodeError:
			logger.debug(f"Dropping unparseable json block: {body[:80]}")
			continue
		event = _validate(value)
		if event is not None:
			events.append(event)
	return events, spans


def _inline_events(text: str, skip: list[tuple[int, int]]) -> list[StructuredEvent]:
	events: list[StructuredEvent] = []
	index = text.find("{")
	while index != -1:
		fence = next(((start, end) for start, end in skip if start <= index < end), None)
		if fence is not None:
			index = text.find("{", fence[1])
			continue
		try:
			value, end = _decoder.raw_decode(text, index)
		except json.JSONDecodeError:
			index = text.find("{", index + 1)
			continue
		if isinstance(value, dict) and value.get("type") in EVENT_TYPES:
			event = _validate(value)
			if event is not None:
				events.append(event)
			index = text.find("{", end)
		else:
			index = text.find("{", index + 1)
	return events


def extract_events(text: str) -> list[StructuredEvent]:
	"""
	All valid structured events in a response.

	Fenced blocks come first, in order of appearance, followed by inline
	objects found outside any fence.
	"""
	if not text:
		return []
	fenced, spans = _fenced_events(text)
	return fenced + _inline_events(text, spans)


def collapse_events(events: list[StructuredEvent]) -> list[StructuredEvent]:
	"""
	Keep only the last clarification and the last plan.

	A plan supersedes every clarification in the same response. Progress
	and artifact events are all kept. Relative order of the kept events
	is unchanged.
	"""
	last: dict[str, int] = {}
	for index, event in enumerate(events):
		if event.type in ("clarification", "plan"):
			last[event.type] = index
	if "plan" in last:
		last["clarification"] = -1

	kept = []
	for index, event in enumerate(events):
		if event.type in last and last[event.type] != index:
			logger.debug(f"Superseded {event.type} event dropped")
			continue
		kept.append(event)
	return kept
