"""Declared parameters, prompts and value rules for every action kind."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from assistant.engine.errors import UnresolvedExpression
from assistant.engine.types import ActionKind, ParameterKind
from assistant.resolvers.dates import resolve_date, resolve_time

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

PARAMETER_KINDS: dict[str, ParameterKind] = {
    "email": ParameterKind.EMAIL,
    "recipient_email": ParameterKind.EMAIL,
    "attendees": ParameterKind.EMAIL_LIST,
    "due_date": ParameterKind.DATE,
    "date": ParameterKind.DATE,
    "due_time": ParameterKind.TIME,
    "time": ParameterKind.TIME,
    "max_points": ParameterKind.INTEGER,
    "duration": ParameterKind.INTEGER,
}

EXPECTED_DESCRIPTIONS = {
    ParameterKind.EMAIL: "an email address",
    ParameterKind.EMAIL_LIST: "a list of email addresses",
    ParameterKind.DATE: "a date",
    ParameterKind.TIME: "a time",
    ParameterKind.INTEGER: "a number",
    ParameterKind.TEXT: "text",
}


@dataclass(frozen=True, slots=True)
class ActionSpec:
    """Static description of one action kind."""

    kind: ActionKind
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()
    prompts: Mapping[str, str] = field(default_factory=dict)
    method: str = "POST"
    path: str = ""
    confirm: bool = False
    summary: str = ""

    @property
    def parameters(self) -> tuple[str, ...]:
        return self.required + self.optional

    def accepts(self, name: str) -> bool:
        return name in self.required or name in self.optional

    def prompt_for(self, name: str) -> str:
        return self.prompts.get(name) or f"Could you share the {parameter_label(name)}?"


ACTION_SPECS: dict[ActionKind, ActionSpec] = {
    spec.kind: spec
    for spec in (
        ActionSpec(
            kind=ActionKind.CREATE_COURSE,
            required=("name",),
            optional=("section", "description", "room"),
            prompts={"name": "What would you like to call your new class?"},
            path="classroom",
            confirm=True,
            summary='create a course called "{name}"',
        ),
        ActionSpec(
            kind=ActionKind.INVITE_STUDENT,
            required=("email", "course_name"),
            prompts={
                "email": "What's the email address of the student you'd like to invite?",
                "course_name": "Which class should I invite them to?",
            },
            path="invitations/invite",
        ),
        ActionSpec(
            kind=ActionKind.CREATE_ANNOUNCEMENT,
            required=("course_name", "announcement_text"),
            prompts={
                "course_name": "Which course should I post this announcement in?",
                "announcement_text": "What would you like to announce?",
            },
            path="announcements",
        ),
        ActionSpec(
            kind=ActionKind.CREATE_ASSIGNMENT,
            required=("course_name", "title", "due_date", "due_time"),
            optional=("description", "max_points"),
            prompts={
                "course_name": "Which course is this assignment for?",
                "title": "What should the assignment be called?",
                "due_date": 'When is it due? For example "next Friday" or "in 2 weeks".',
                "due_time": 'What time is it due? For example "5 PM" or "noon".',
            },
            path="assignments",
        ),
        ActionSpec(
            kind=ActionKind.LIST_ASSIGNMENTS,
            required=("course_name",),
            prompts={"course_name": "Which course's assignments would you like to see?"},
            method="GET",
            path="assignments",
        ),
        ActionSpec(
            kind=ActionKind.SHOW_ENROLLED_STUDENTS,
            required=("course_name",),
            prompts={"course_name": "Which course's students would you like to see?"},
            method="GET",
            path="classroom/students",
        ),
        ActionSpec(
            kind=ActionKind.CREATE_MEETING,
            required=("title", "attendees", "date", "time"),
            optional=("duration", "description"),
            prompts={
                "title": "What's the meeting about?",
                "attendees": "Who should I invite? Please share their email addresses.",
                "date": 'What day should the meeting be? For example "tomorrow" or "next Monday".',
                "time": 'What time should it start? For example "9:30 AM".',
            },
            path="calendar/meetings",
        ),
        ActionSpec(
            kind=ActionKind.SEND_EMAIL,
            required=("recipient_email", "subject", "message"),
            prompts={
                "recipient_email": "Who should I send the email to?",
                "subject": "What's the subject of the email?",
                "message": "What would you like the email to say?",
            },
            path="emails",
        ),
    )
}


def spec_for(action: ActionKind | str) -> ActionSpec:
    return ACTION_SPECS[ActionKind.parse(action)]


def parameter_kind(name: str) -> ParameterKind:
    return PARAMETER_KINDS.get(name, ParameterKind.TEXT)


def parameter_label(name: str) -> str:
    return name.replace("_", " ")


def coerce_parameter(name: str, value: Any, now: datetime) -> Any:
    """Validate and normalise one raw parameter value.

    Dates become ``YYYY-MM-DD``, times ``HH:MM``, email lists a list of
    addresses. Raises :class:`UnresolvedExpression` when the value cannot be
    understood as the parameter's kind.
    """

    kind = parameter_kind(name)

    if kind is ParameterKind.EMAIL_LIST:
        raw = value if isinstance(value, (list, tuple)) else [value]
        emails = [match for item in raw for match in EMAIL_PATTERN.findall(str(item))]
        if not emails:
            raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])
        return list(dict.fromkeys(email.lower() for email in emails))

    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])
        value = value[0]

    if kind is ParameterKind.INTEGER:
        if isinstance(value, bool):
            raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])
        if isinstance(value, int):
            return value
        match = re.search(r"\d+", str(value))
        if not match:
            raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])
        return int(match.group())

    # Only strings, and whole numbers for free text, are read as single values.
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])
    if isinstance(value, int) and kind is not ParameterKind.TEXT:
        raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])

    text = str(value).strip()
    if not text:
        raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])

    if kind is ParameterKind.EMAIL:
        matches = EMAIL_PATTERN.findall(text)
        if len(matches) != 1:
            raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])
        return matches[0].lower()

    if kind is ParameterKind.DATE:
        resolved = resolve_date(text, now)
        if resolved is None:
            raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])
        return resolved

    if kind is ParameterKind.TIME:
        resolved = resolve_time(text)
        if resolved is None:
            raise UnresolvedExpression(name, value, EXPECTED_DESCRIPTIONS[kind])
        return resolved

    return text


def describe_catalogue() -> list[dict[str, Any]]:
    """Return a JSON-friendly view of every action kind."""

    return [
        {
            "action": spec.kind.value,
            "required": list(spec.required),
            "optional": list(spec.optional),
            "confirm": spec.confirm,
        }
        for spec in ACTION_SPECS.values()
    ]
