"""
Quick actions - canned request templates offered to users.

Templates use {placeholder} fields. Unfilled placeholders are left in
place so a caller can tell what is still missing.
"""

import re
from dataclasses import dataclass
from typing import Optional

PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class QuickAction:
	id: str
	label: str
	description: str
	icon: str
	prompt_template: str
	category: str  # productivity, data, creative, communication

	@property
	def placeholders(self) -> list[str]:
		"""Field names in the template, in order of first appearance."""
		names: list[str] = []
		for name in PLACEHOLDER.findall(self.prompt_template):
			if name not in names:
				names.append(name)
		return names

	def render(self, **values: str) -> str:
		return PLACEHOLDER.sub(lambda m: str(values.get(m.group(1), m.group(0))), self.prompt_template)


DEFAULT_QUICK_ACTIONS: list[QuickAction] = [
	QuickAction(
		id="create-file",
		label="Create a file",
		description="Generate documents, spreadsheets, presentations",
		icon="file-plus",
		prompt_template="Create a new {fileType} file named {fileName} with the following content: {content}",
		category="productivity",
	),
	QuickAction(
		id="crunch-data",
		label="Crunch data",
		description="Analyze files, extract insights, create summaries",
		icon="bar-chart",
		prompt_template="Analyze the data in {files} and {analysisType}",
		category="data",
	),
	QuickAction(
		id="make-prototype",
		label="Make a prototype",
		description="Design mockups and wireframes",
		icon="pencil-ruler",
		prompt_template="Create a prototype for {description}",
		category="creative",
	),
	QuickAction(
		id="prep-day",
		label="Prep for the day",
		description="Review calendar, summarize meetings",
		icon="calendar",
		prompt_template="Help me prepare for today by reviewing my schedule and summarizing key meetings",
		category="productivity",
	),
	QuickAction(
		id="organize-files",
		label="Organize files",
		description="Sort, rename, categorize documents",
		icon="folder-tree",
		prompt_template="Organize the files in {directory} by {organizationMethod}",
		category="productivity",
	),
	QuickAction(
		id="send-message",
		label="Send a message",
		description="Draft and send emails or messages",
		icon="mail",
		prompt_template="Draft a {messageType} to {recipient} about {subject}",
		category="communication",
	),
]


def get_quick_action(action_id: str) -> Optional[QuickAction]:
	return next((a for a in DEFAULT_QUICK_ACTIONS if a.id == action_id), None)
