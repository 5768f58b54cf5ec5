"""Completion checks and follow-up prompt generation."""

from __future__ import annotations

import logging
from typing import Any

from assistant.engine.catalog import parameter_label, spec_for
from assistant.engine.errors import ActionAlreadyComplete, ActionIncomplete, NoActiveAction
from assistant.memory.models import OngoingAction
from assistant.memory.store import ActionStore

logger = logging.getLogger("classroom.engine")


class CompletionGenerator:
    """Decide whether an action is ready and what to ask for next.

    Prompts ask for one parameter at a time, in the action's declared order,
    and are prefixed with a short recap of what has been collected so far.
    """

    def __init__(self, store: ActionStore) -> None:
        self.store = store

    def is_complete(self, conversation_id: str) -> bool:
        ongoing = self.store.get(conversation_id)
        return ongoing is not None and ongoing.is_complete

    def next_prompt(self, conversation_id: str) -> str:
        ongoing = self.store.get(conversation_id)
        if ongoing is None:
            raise NoActiveAction(conversation_id)
        return self.prompt_for(ongoing)

    def finalize(self, conversation_id: str) -> dict[str, Any]:
        with self.store.lock(conversation_id):
            ongoing = self.store.get(conversation_id)
            if ongoing is None:
                raise NoActiveAction(conversation_id)
            if not ongoing.is_complete:
                raise ActionIncomplete(conversation_id, ongoing.missing_parameters)
            self.store.complete(conversation_id)

        logger.info("Finalized %s for conversation %s", ongoing.action.value, conversation_id)
        return dict(ongoing.collected_parameters)

    def prompt_for(self, ongoing: OngoingAction) -> str:
        missing = ongoing.missing_parameters
        if not missing:
            raise ActionAlreadyComplete(ongoing.conversation_id)

        question = spec_for(ongoing.action).prompt_for(missing[0])
        recap = self.recap(ongoing)
        return f"{recap} {question}" if recap else question

    def recap(self, ongoing: OngoingAction) -> str:
        listed = _listed(ongoing.required_parameters, ongoing.collected_parameters)
        if not listed:
            return ""
        return f"To {ongoing.action.label} I have the {listed}."

    def confirmation_prompt(self, ongoing: OngoingAction) -> str:
        """Ask the user to approve a complete action before it is executed."""

        spec = spec_for(ongoing.action)
        values = {name: format_value(value) for name, value in ongoing.collected_parameters.items()}
        try:
            summary = spec.summary.format(**values)
        except KeyError:
            summary = ""
        if not summary:
            names = tuple(dict.fromkeys(ongoing.required_parameters + spec.optional))
            summary = f"{ongoing.action.label} with the {_listed(names, ongoing.collected_parameters)}"
        return f'I\'ll {summary}. Is this correct? Please confirm with "yes" or "no", or tell me what to change.'


def _listed(names: tuple[str, ...], collected: dict[str, Any]) -> str:
    items = [f"{parameter_label(name)} ({format_value(collected[name])})" for name in names if name in collected]
    if len(items) <= 1:
        return "".join(items)
    return ", ".join(items[:-1]) + f" and {items[-1]}"


def format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)
