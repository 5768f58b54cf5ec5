import pytest

from assistant.engine.completion import CompletionGenerator
from assistant.engine.errors import ActionAlreadyComplete, ActionIncomplete, NoActiveAction
from assistant.engine.types import ActionKind


def test_invite_scenario_prompts_then_finalizes(action_store):
    completion = CompletionGenerator(action_store)
    action_store.start("conv1", ActionKind.INVITE_STUDENT, ["email", "course_name"], {"course_name": "english"})

    assert completion.is_complete("conv1") is False
    assert completion.next_prompt("conv1") == (
        "To invite student I have the course name (english). "
        "What's the email address of the student you'd like to invite?"
    )

    action_store.merge_parameters("conv1", {"email": "john@school.edu"})

    assert completion.is_complete("conv1") is True
    assert completion.finalize("conv1") == {"course_name": "english", "email": "john@school.edu"}
    assert action_store.get("conv1") is None


def test_prompts_follow_declared_order(action_store):
    completion = CompletionGenerator(action_store)
    action_store.start("conv1", ActionKind.CREATE_ASSIGNMENT)

    assert completion.next_prompt("conv1") == "Which course is this assignment for?"

    action_store.merge_parameters("conv1", {"due_time": "17:00"})

    assert completion.next_prompt("conv1").endswith("Which course is this assignment for?")


def test_finalize_incomplete_keeps_entry(action_store):
    completion = CompletionGenerator(action_store)
    action_store.start("conv1", ActionKind.INVITE_STUDENT)

    with pytest.raises(ActionIncomplete) as excinfo:
        completion.finalize("conv1")

    assert excinfo.value.missing == ["email", "course_name"]
    assert action_store.get("conv1") is not None


def test_finalize_without_action_raises(action_store):
    completion = CompletionGenerator(action_store)

    with pytest.raises(NoActiveAction):
        completion.finalize("conv-missing")
    with pytest.raises(NoActiveAction):
        completion.next_prompt("conv-missing")
    assert completion.is_complete("conv-missing") is False


def test_prompt_for_complete_action_raises(action_store):
    completion = CompletionGenerator(action_store)
    entry = action_store.start("conv1", ActionKind.LIST_ASSIGNMENTS, None, {"course_name": "english"})

    with pytest.raises(ActionAlreadyComplete):
        completion.prompt_for(entry)
