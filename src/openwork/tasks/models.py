"""
Task models - the hierarchical unit-of-work tree.

Tasks live in a TaskTree arena: a flat map from task id to Task, with
parent/child links stored as ids. Nothing holds a reference to another
task object, so recomputing aggregate progress is a pass over ids.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterator, Optional

from pydantic import BaseModel, Field


def generate_id() -> str:
	"""Generate a unique identifier."""
	return str(uuid.uuid4())


class TaskStatus(str, Enum):
	"""Lifecycle status of a task."""
	PENDING = "pending"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"
	FAILED = "failed"
	CANCELLED = "cancelled"


class Task(BaseModel):
	"""A node in the task tree."""
	id: str = Field(default_factory=generate_id)
	description: str
	status: TaskStatus = Field(default=TaskStatus.PENDING)
	progress: int = Field(default=0, ge=0, le=100)
	result: Optional[str] = Field(default=None)
	error: Optional[str] = Field(default=None)
	started_at: Optional[datetime] = Field(default=None)
	completed_at: Optional[datetime] = Field(default=None)
	metadata: dict[str, Any] = Field(default_factory=dict)

	parent_id: Optional[str] = Field(default=None)
	subtask_ids: list[str] = Field(default_factory=list)

	model_config = {"validate_assignment": True}

	@property
	def is_leaf(self) -> bool:
		return not self.subtask_ids


@dataclass
class ProgressUpdate:
	"""Progress event emitted to subscribers. Never stored."""
	task_id: str
	status: TaskStatus
	progress: int
	message: Optional[str] = None
	subtask_id: Optional[str] = None

	def to_dict(self) -> dict[str, Any]:
		data: dict[str, Any] = {
			"taskId": self.task_id,
			"status": self.status.value,
			"progress": self.progress,
		}
		if self.message is not None:
			data["message"] = self.message
		if self.subtask_id is not None:
			data["subtaskId"] = self.subtask_id
		return data


class TaskTree:
	"""Arena holding one task tree keyed by task id."""

	def __init__(self, root: Optional[Task] = None):
		self._tasks: dict[str, Task] = {}
		self.root_id: Optional[str] = None
		if root is not None:
			self.add(root)

	def add(self, task: Task, parent_id: Optional[str] = None) -> Task:
		"""Insert a task, linking it under parent_id (or as the root)."""
		if task.id in self._tasks:
			raise ValueError(f"Duplicate task id: {task.id}")

		if parent_id is None:
			if self.root_id is not None:
				raise ValueError("Tree already has a root task")
			self.root_id = task.id
			task.parent_id = None
		else:
			parent = self._tasks.get(parent_id)
			if parent is None:
				raise KeyError(f"Unknown parent task: {parent_id}")
			task.parent_id = parent_id
			parent.subtask_ids.append(task.id)

		self._tasks[task.id] = task
		return task

	@property
	def root(self) -> Optional[Task]:
		return self._tasks.get(self.root_id) if self.root_id else None

	def get(self, task_id: str) -> Optional[Task]:
		return self._tasks.get(task_id)

	def children(self, task_id: str) -> list[Task]:
		"""Direct children of a task, in order."""
		task = self._tasks.get(task_id)
		if task is None:
			return []
		return [self._tasks[child_id] for child_id in task.subtask_ids]

	def parent(self, task_id: str) -> Optional[Task]:
		task = self._tasks.get(task_id)
		if task is None or task.parent_id is None:
			return None
		return self._tasks.get(task.parent_id)

	def walk(self, task_id: Optional[str] = None) -> Iterator[Task]:
		"""Pre-order traversal starting at task_id (default: root)."""
		start = task_id or self.root_id
		if start is None or start not in self._tasks:
			return
		stack = [start]
		while stack:
			current = self._tasks[stack.pop()]
			yield current
			stack.extend(reversed(current.subtask_ids))

	def descendants(self, task_id: str) -> list[Task]:
		"""All tasks below task_id, excluding task_id itself."""
		return [t for t in self.walk(task_id) if t.id != task_id]

	def __contains__(self, task_id: object) -> bool:
		return task_id in self._tasks

	def __len__(self) -> int:
		return len(self._tasks)

	def __iter__(self) -> Iterator[Task]:
		return iter(self._tasks.values())
