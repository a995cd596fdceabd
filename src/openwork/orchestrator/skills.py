"""
Skills - named, higher-level actions run against the orchestrator's
session, tools and active adapter.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from ..tools.base import Tool

if TYPE_CHECKING:
	from ..providers.base import BaseProviderAdapter
	from .session import Session


@dataclass
class SkillContext:
	"""What a skill gets to work with."""
	session: "Session"
	tools: dict[str, Tool]
	adapter: "BaseProviderAdapter"
	input: dict[str, Any] = field(default_factory=dict)


@dataclass
class SkillResult:
	success: bool
	output: Optional[str] = None
	artifacts: list[dict[str, Any]] = field(default_factory=list)
	error: Optional[str] = None


@dataclass
class Skill:
	"""An extensible action registered with the orchestrator."""
	name: str
	description: str
	category: str
	execute: Callable[[SkillContext], Awaitable[SkillResult]]
