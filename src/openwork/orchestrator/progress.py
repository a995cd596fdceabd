"""
Progress Tracker - owns runtime state of task trees and emits progress events.

All mutations go through this class. After every status or progress
change, every ancestor's progress is recomputed bottom-up from the
registered root as the rounded mean of its children, then the change is
emitted to subscribers.
"""

import logging
import math
from datetime import datetime
from typing import Callable, Optional

from ..tasks.models import ProgressUpdate, Task, TaskStatus, TaskTree

logger = logging.getLogger(__name__)

ProgressSubscriber = Callable[[ProgressUpdate], None]

STARTED_PROGRESS_FLOOR = 10


def round_half_up(value: float) -> int:
	"""Round halves up: 16.5 -> 17."""
	return math.floor(value + 0.5)


class ProgressTracker:
	"""Indexes registered tasks by id and keeps aggregate progress consistent."""

	def __init__(self):
		self._tasks: dict[str, Task] = {}
		self._subscribers: list[ProgressSubscriber] = []
		self.root_task_id: Optional[str] = None

	# -- Subscriptions --

	def subscribe(self, callback: ProgressSubscriber) -> Callable[[], None]:
		"""Register a subscriber. Returns a function that unsubscribes it."""
		self._subscribers.append(callback)

		def unsubscribe() -> None:
			if callback in self._subscribers:
				self._subscribers.remove(callback)

		return unsubscribe

	def _emit(self, update: ProgressUpdate) -> None:
		for callback in list(self._subscribers):
			try:
				callback(update)
			except Exception:
				logger.exception(f"Progress subscriber failed for task {update.task_id}")

	# -- Registration and lookup --

	def register_task(self, tree: TaskTree, task_id: Optional[str] = None, is_root: bool = True) -> None:
		"""Index a task (default: the tree's root) and all its descendants."""
		start_id = task_id or tree.root_id
		if start_id is None or start_id not in tree:
			logger.warning(f"Cannot register unknown task: {start_id}")
			return

		for task in tree.walk(start_id):
			self._tasks[task.id] = task
		if is_root:
			self.root_task_id = start_id

	def get_task(self, task_id: str) -> Optional[Task]:
		return self._tasks.get(task_id)

	def get_root_task(self) -> Optional[Task]:
		return self._tasks.get(self.root_task_id) if self.root_task_id else None

	def get_all_tasks(self) -> list[Task]:
		return list(self._tasks.values())

	def children(self, task_id: str) -> list[Task]:
		task = self._tasks.get(task_id)
		if task is None:
			return []
		return [self._tasks[cid] for cid in task.subtask_ids if cid in self._tasks]

	def _lookup(self, task_id: str) -> Optional[Task]:
		task = self._tasks.get(task_id)
		if task is None:
			logger.warning(f"Task not found: {task_id}")
		return task

	# -- Mutations --

	def update_status(self, task_id: str, status: TaskStatus, message: Optional[str] = None) -> None:
		"""Set a task's status, stamping start/completion times."""
		task = self._lookup(task_id)
		if task is None:
			return

		status = TaskStatus(status)
		previous = task.status
		if status == TaskStatus.PENDING and previous != TaskStatus.PENDING:
			logger.warning(f"Ignoring transition {previous.value} -> pending for task {task_id}")
			return

		task.status = status
		now = datetime.now()
		if status in (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED):
			# a rerun starts clean
			task.error = None
		if status == TaskStatus.IN_PROGRESS:
			if previous == TaskStatus.PENDING or task.started_at is None:
				task.started_at = now
			if task.is_leaf:
				task.progress = max(task.progress, STARTED_PROGRESS_FLOOR)
		elif status == TaskStatus.COMPLETED:
			task.completed_at = now
			if task.is_leaf:
				task.progress = 100
		elif status == TaskStatus.FAILED:
			task.completed_at = now

		self._recalculate()
		self._emit(ProgressUpdate(
			task_id=task_id,
			status=task.status,
			progress=task.progress,
			message=message,
			subtask_id=self._subtask_hint(task),
		))

	def update_progress(self, task_id: str, progress: float, message: Optional[str] = None) -> None:
		"""Set a leaf task's progress, promoting its status where implied."""
		task = self._lookup(task_id)
		if task is None:
			return

		if not task.is_leaf:
			logger.debug(f"Progress of {task_id} is derived from its subtasks; ignoring direct update")
		else:
			value = max(0, min(100, round_half_up(progress)))
			now = datetime.now()
			if value >= 100:
				if task.status != TaskStatus.COMPLETED:
					task.status = TaskStatus.COMPLETED
					task.completed_at = now
					task.error = None
			elif value > 0 and task.status == TaskStatus.PENDING:
				task.status = TaskStatus.IN_PROGRESS
				task.started_at = now
			if task.status == TaskStatus.IN_PROGRESS:
				value = max(value, STARTED_PROGRESS_FLOOR)
			task.progress = value

		self._recalculate()
		self._emit(ProgressUpdate(
			task_id=task_id,
			status=task.status,
			progress=task.progress,
			message=message,
			subtask_id=self._subtask_hint(task),
		))

	def set_result(self, task_id: str, result: str) -> None:
		task = self._lookup(task_id)
		if task is not None:
			task.result = result

	def set_error(self, task_id: str, error: str) -> None:
		"""Attach an error, force the task to failed and emit once."""
		task = self._lookup(task_id)
		if task is None:
			return

		task.error = error
		task.status = TaskStatus.FAILED
		task.completed_at = datetime.now()
		self._recalculate()
		self._emit(ProgressUpdate(
			task_id=task_id,
			status=TaskStatus.FAILED,
			progress=task.progress,
			message=error,
			subtask_id=self._subtask_hint(task),
		))

	def _subtask_hint(self, task: Task) -> Optional[str]:
		# Events for subtasks also name the task itself as subtask_id so
		# listeners keyed on the root can tell which child moved
		if task.parent_id is not None and task.parent_id in self._tasks:
			return task.id
		return None

	# -- Aggregation --

	def _recalculate(self) -> None:
		"""Bottom-up pass over ids from the root."""
		if self.root_task_id is None or self.root_task_id not in self._tasks:
			return

		order: list[str] = []
		stack = [self.root_task_id]
		while stack:
			current = stack.pop()
			order.append(current)
			stack.extend(cid for cid in self._tasks[current].subtask_ids if cid in self._tasks)

		# Reverse pre-order visits every child before its parent
		for task_id in reversed(order):
			task = self._tasks[task_id]
			children = [self._tasks[cid] for cid in task.subtask_ids if cid in self._tasks]
			if children:
				task.progress = round_half_up(sum(child.progress for child in children) / len(children))

	def get_summary(self) -> dict:
		"""Counts by status plus the root's overall progress."""
		tasks = self.get_all_tasks()
		root = self.get_root_task()

		def count(status: TaskStatus) -> int:
			return len([t for t in tasks if t.status == status])

		return {
			"total": len(tasks),
			"completed": count(TaskStatus.COMPLETED),
			"in_progress": count(TaskStatus.IN_PROGRESS),
			"pending": count(TaskStatus.PENDING),
			"failed": count(TaskStatus.FAILED),
			"cancelled": count(TaskStatus.CANCELLED),
			"overall_progress": root.progress if root else 0,
		}

	# -- Reset --

	def reset(self) -> None:
		"""Return every tracked task to pending with no progress."""
		for task in self._tasks.values():
			task.status = TaskStatus.PENDING
			task.progress = 0
			task.result = None
			task.error = None
			task.started_at = None
			task.completed_at = None

	def clear(self) -> None:
		"""Forget all tasks."""
		self._tasks.clear()
		self.root_task_id = None
