"""Session state owned by one orchestrator."""

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..providers.types import ProviderId
from ..tasks.models import TaskTree, generate_id

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class SessionConfig(BaseModel):
	"""Active provider configuration for a session."""
	provider: ProviderId = ProviderId.CLAUDE
	model: str = DEFAULT_MODEL
	api_key: Optional[str] = None
	base_url: Optional[str] = None
	max_tokens: int = Field(default=4096, gt=0)
	temperature: float = Field(default=0.7, ge=0, le=2)

	model_config = {"validate_assignment": True, "protected_namespaces": ()}

	def merged(self, **changes: Any) -> "SessionConfig":
		"""Copy with changes applied and validated. None values are ignored."""
		data = self.model_dump()
		data.update({k: v for k, v in changes.items() if v is not None})
		return SessionConfig.model_validate(data)


@dataclass
class Session:
	"""One orchestrator session. Not persisted."""
	id: str = field(default_factory=generate_id)
	working_directory: str = field(default_factory=os.getcwd)
	context_files: list[str] = field(default_factory=list)
	task_trees: list[TaskTree] = field(default_factory=list)
	config: SessionConfig = field(default_factory=SessionConfig)
	created_at: datetime = field(default_factory=datetime.now)
	updated_at: datetime = field(default_factory=datetime.now)

	def touch(self) -> None:
		self.updated_at = datetime.now()

	def snapshot(self) -> "Session":
		"""Copy whose lists and config can be changed without affecting this session."""
		return Session(
			id=self.id,
			working_directory=self.working_directory,
			context_files=list(self.context_files),
			task_trees=list(self.task_trees),
			config=self.config.model_copy(),
			created_at=self.created_at,
			updated_at=self.updated_at,
		)
