"""Tests for quick action templates."""

from openwork.quick_actions import DEFAULT_QUICK_ACTIONS, get_quick_action


def test_default_actions_are_unique():
	ids = [a.id for a in DEFAULT_QUICK_ACTIONS]
	assert len(ids) == 6
	assert len(set(ids)) == len(ids)


def test_placeholders_in_order():
	action = get_quick_action("create-file")
	assert action.placeholders == ["fileType", "fileName", "content"]
	assert get_quick_action("prep-day").placeholders == []


def test_render_fills_values():
	action = get_quick_action("send-message")
	prompt = action.render(messageType="email", recipient="Sam", subject="the launch")
	assert prompt == "Draft a email to Sam about the launch"


def test_render_keeps_missing_placeholders():
	action = get_quick_action("organize-files")
	prompt = action.render(directory="~/Downloads")
	assert prompt == "Organize the files in ~/Downloads by {organizationMethod}"


def test_unknown_action():
	assert get_quick_action("launch-rocket") is None
