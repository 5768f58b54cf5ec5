"""Domain errors raised by the conversational action engine.

None of these are fatal: the worst outcome of any of them is asking the
user again.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for recoverable, single-turn engine errors."""

    code = "engine_error"


class NoActiveAction(EngineError):
    """A conversation has no ongoing action to mutate or finalize."""

    code = "no_active_action"

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"No action in progress for conversation {conversation_id!r}")
        self.conversation_id = conversation_id


class ActionIncomplete(EngineError):
    """An action was finalized while required parameters are still missing."""

    code = "action_incomplete"

    def __init__(self, conversation_id: str, missing: list[str]) -> None:
        super().__init__(
            f"Conversation {conversation_id!r} is still missing: {', '.join(missing)}"
        )
        self.conversation_id = conversation_id
        self.missing = list(missing)


class ActionAlreadyComplete(EngineError):
    """A follow-up prompt was requested for an action with nothing missing."""

    code = "action_already_complete"

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation {conversation_id!r} has nothing left to ask for")
        self.conversation_id = conversation_id


class UnknownActionKind(EngineError):
    """The extractor produced an action tag outside the declared catalogue."""

    code = "unknown_action_kind"

    def __init__(self, tag: object) -> None:
        super().__init__(f"Unknown action kind: {tag!r}")
        self.tag = tag


class UnresolvedExpression(EngineError):
    """A parameter value (date, time, email) could not be understood."""

    code = "unresolved_expression"

    def __init__(self, parameter: str, expression: object, expected: str) -> None:
        super().__init__(f"Could not resolve {expression!r} as {expected} for {parameter}")
        self.parameter = parameter
        self.expression = expression
        self.expected = expected
