"""Task tree data model."""

from .models import ProgressUpdate, Task, TaskStatus, TaskTree, generate_id

__all__ = [
	"ProgressUpdate",
	"Task",
	"TaskStatus",
	"TaskTree",
	"generate_id",
]
