"""Engine-related enums and data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from assistant.engine.errors import UnknownActionKind


class ActionKind(str, Enum):
    """Operations the assistant can ultimately execute."""

    CREATE_COURSE = "CREATE_COURSE"
    INVITE_STUDENT = "INVITE_STUDENT"
    CREATE_ANNOUNCEMENT = "CREATE_ANNOUNCEMENT"
    CREATE_ASSIGNMENT = "CREATE_ASSIGNMENT"
    LIST_ASSIGNMENTS = "LIST_ASSIGNMENTS"
    SHOW_ENROLLED_STUDENTS = "SHOW_ENROLLED_STUDENTS"
    CREATE_MEETING = "CREATE_MEETING"
    SEND_EMAIL = "SEND_EMAIL"

    @classmethod
    def parse(cls, tag: Union["ActionKind", str]) -> "ActionKind":
        """Return the kind named by ``tag`` or raise :class:`UnknownActionKind`."""

        if isinstance(tag, cls):
            return tag
        if not isinstance(tag, str):
            raise UnknownActionKind(tag)
        normalised = tag.strip().upper().replace("-", "_").replace(" ", "_")
        normalised = ACTION_ALIASES.get(normalised, normalised)
        try:
            return cls(normalised)
        except ValueError as exc:
            raise UnknownActionKind(tag) from exc

    @property
    def label(self) -> str:
        return self.value.lower().replace("_", " ")


ACTION_ALIASES = {
    "INVITE_STUDENTS": "INVITE_STUDENT",
    "ADD_STUDENT": "INVITE_STUDENT",
    "CREATE_CLASS": "CREATE_COURSE",
    "SCHEDULE_MEETING": "CREATE_MEETING",
    "SHOW_STUDENTS": "SHOW_ENROLLED_STUDENTS",
}


class ParameterKind(str, Enum):
    """How a raw parameter value is validated and normalised."""

    TEXT = "text"
    EMAIL = "email"
    EMAIL_LIST = "email_list"
    DATE = "date"
    TIME = "time"
    INTEGER = "integer"


class TurnDecision(str, Enum):
    """Relationship between an incoming turn and the stored action."""

    NEW_ACTION = "new_action"
    CONTINUATION = "continuation"
    CORRECTION = "correction"
    CANCEL = "cancel"
    CONFIRMATION = "confirmation"
    UNRECOGNIZED = "unrecognized"


@dataclass(slots=True)
class CorrectionCandidate:
    """Structured output of the intent/entity extractor for one message.

    ``action`` is ``None`` when the message only answers the previous prompt.
    ``confirmation`` is the user's yes (``True``) or no (``False``) to a
    confirmation question, ``None`` when the message is neither. ``inferred``
    names parameters taken from earlier messages rather than this one.
    """

    action: Optional[Union[ActionKind, str]] = None
    parameters: dict[str, Any] = field(default_factory=dict)
    new_intent: bool = False
    correction_marker: bool = False
    cancel: bool = False
    confidence: float = 1.0
    confirmation: Optional[bool] = None
    inferred: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Classification:
    """Detector output: the decision plus how the parameters relate to state."""

    decision: TurnDecision
    action: Optional[ActionKind]
    parameters: dict[str, Any] = field(default_factory=dict)
    corrected: dict[str, tuple[Any, Any]] = field(default_factory=dict)
    filled: list[str] = field(default_factory=list)
    abandoned: Optional[ActionKind] = None
    deferred: Optional[ActionKind] = None


@dataclass(slots=True)
class TurnResult:
    """Outcome of a single conversational turn."""

    ready: bool
    decision: TurnDecision
    action: Optional[ActionKind] = None
    parameters: Optional[dict[str, Any]] = None
    prompt: Optional[str] = None
    notice: Optional[str] = None
    issues: list[str] = field(default_factory=list)
    awaiting_confirmation: bool = False

    @property
    def message(self) -> str:
        """User-facing text combining the notice and the prompt."""

        parts = [part for part in (self.notice, self.prompt) if part]
        return " ".join(parts)
