"""Deterministic keyword-based extractor."""

from __future__ import annotations

import re
from typing import Any, Optional, Sequence

from assistant.engine.catalog import EMAIL_PATTERN, parameter_kind, spec_for
from assistant.engine.types import ActionKind, CorrectionCandidate, ParameterKind
from assistant.memory.models import MessageTurn, OngoingAction
from assistant.nlu.base import Extractor

CANCEL_PATTERN = re.compile(r"\b(cancel|stop|never\s?mind|forget it|abort|quit)\b")
# The whole message is a cancel request ("ok, never mind", "cancel the announcement").
CANCEL_ONLY = re.compile(
    r"^\s*(?:(?:oh|ok|okay|no|please|just)[\s,]+)*(?:cancel|stop|never\s?mind|forget it|abort|quit)"
    r"(?:\s+(?:it|that|this|the|my|please|request|action|announcement|assignment|email|meeting|invitation|invite))*"
    r"[\s.!]*$"
)
COMMAND_PATTERN = re.compile(
    r"^\s*(?:(?:please|ok|okay|actually|now|also|can you|could you|would you|i want to|i'd like to|let's)[\s,]+)*"
    r"(?:create|make|add|invite|enroll|send|write|email|schedule|set up|book|arrange|post|announce|list|show|see|start)\b"
)
AFFIRMATIVE = re.compile(
    r"^\s*(?:y|yes|yeah|yep|yup|sure|ok|okay|correct|right|that's right|that is right|that's correct|that is correct"
    r"|go ahead|proceed|do it|create it|confirm|sounds good)(?:[\s,]+please)?[\s.!]*$"
)
NEGATIVE = re.compile(
    r"^\s*(?:n|no|nope|wrong|incorrect|not right|that's not right|that is not right|that's wrong|that is wrong"
    r"|not correct|that's not correct|that is not correct|change it|something different)\b"
)
CORRECTION_PATTERN = re.compile(
    r"\b(actually|i meant|sorry|oops|no wait|instead|make it|change it to|correction)\b"
)
DATE_PATTERN = re.compile(
    r"\b(today|tomorrow|next\s+week|next\s+(?:mon|tues|wednes|thurs|fri|satur|sun)day"
    r"|in\s+(?:\d+|a|an|one|two|three|four|five|six)\s+weeks?"
    r"|end\s+of\s+(?:the\s+|this\s+)?month)\b"
)
TIME_PATTERN = re.compile(r"\b(noon|midnight|\d{1,2}(?::\d{2})?\s*[ap]\.?m\.?)(?![a-z])")
DURATION_PATTERN = re.compile(r"\bfor\s+(\d+)\s*(hours?|hrs?|minutes?|mins?)\b")
QUOTED_PATTERN = re.compile(r"[\"“]([^\"”]+)[\"”]")
COURSE_WORD = re.compile(r"\b(?:class|course)\b")

COURSE_PATTERNS = [
    re.compile(r"\b(?:to|in|for|into)\s+(?:the\s+)?(?:class|course)\s+(?:called\s+|named\s+)?(?P<name>\w[\w\s-]*)"),
    re.compile(r"\b(?:class|course)\s+(?:name\s+)?(?:would be|should be|will be|is)\s+(?P<name>\w[\w\s-]*)"),
    re.compile(r"\b(?:it's|it is|its|make it|change it to)\s+(?P<name>\w[\w\s-]*?)\s+(?:class|course)\b"),
    re.compile(r"\b(?:to|in|for|into)\s+(?:the\s+|my\s+)?(?P<name>\w[\w\s-]*?)\s+(?:class|course)\b"),
    re.compile(r"\b(?:to|in|for|into)\s+(?:the\s+|my\s+)?(?P<name>\w[\w\s-]*)$"),
]
TITLE_PATTERN = re.compile(r"\b(?:called|titled|named|title is|call it)\s+(?P<title>.+)$")
TEXT_PATTERN = re.compile(r"\b(?:saying|that says|which says)\s+(?P<text>.+)$")
SUBJECT_PATTERN = re.compile(r"\b(?:subject|about)\s+(?P<subject>.+?)(?:\s+saying\b|$)")

# Words that end a captured name ("math 101 due next friday").
CONNECTORS = re.compile(r"\s+(?:at|by|due|on|for|saying|with|and|about|tomorrow|today|next|in)\b.*$")
CUE_PREFIX = re.compile(
    r"^(?:(?:oh|no|ok|okay)\s+)?(?:actually|sorry|oops|no wait|i meant|wait)?[\s,]*(?:i meant\s+)?",
    re.IGNORECASE,
)

GENERIC_COURSE_NAMES = {
    "class",
    "course",
    "my class",
    "my course",
    "the class",
    "the course",
    "this class",
    "this course",
    "a class",
    "a course",
    "a",
    "my",
    "our",
    "the",
    "your",
    "it",
    "this",
    "that",
    "one",
}

ACTION_KEYWORDS: list[tuple[ActionKind, tuple[tuple[str, ...], ...]]] = [
    (ActionKind.SEND_EMAIL, (("send", "write"), ("email", "mail"))),
    (ActionKind.CREATE_MEETING, (("schedule", "set up", "book", "create", "arrange"), ("meeting", "appointment", "call"))),
    (ActionKind.LIST_ASSIGNMENTS, (("list", "show", "see"), ("assignments", "assignment"))),
    (ActionKind.CREATE_ASSIGNMENT, (("assignment", "homework"),)),
    (ActionKind.SHOW_ENROLLED_STUDENTS, (("list", "show", "see", "who"), ("students", "enrolled"))),
    (ActionKind.INVITE_STUDENT, (("invite", "enroll", "add student", "add a student"),)),
    (ActionKind.CREATE_ANNOUNCEMENT, (("announce", "announcement"),)),
    (ActionKind.CREATE_COURSE, (("create", "new", "start", "set up"), ("class", "course"))),
]


class KeywordExtractor(Extractor):
    """Rule-based extractor used when no language model is configured."""

    def extract(
        self,
        message: str,
        context: Optional[OngoingAction] = None,
        history: Sequence[MessageTurn] = (),
    ) -> CorrectionCandidate:
        text = message.strip()
        lowered = text.lower()
        action = self._classify_action(lowered)

        if self._is_cancel(lowered, context):
            return CorrectionCandidate(cancel=True, confidence=0.9)

        if context is not None and context.awaiting_confirmation:
            if AFFIRMATIVE.match(lowered):
                return CorrectionCandidate(confirmation=True, confidence=0.9)
            if NEGATIVE.match(lowered):
                # "no, make it physics class" rejects and corrects in one go.
                return CorrectionCandidate(
                    parameters=self._extract_for_context(context, text, True),
                    correction_marker=True,
                    confirmation=False,
                    confidence=0.6,
                )

        correction = bool(CORRECTION_PATTERN.search(lowered))

        if action is not None:
            if context is None or action is context.action or COMMAND_PATTERN.match(lowered):
                parameters, inferred = self._extract_for_action(action, text, history)
                return CorrectionCandidate(
                    action=action,
                    parameters=parameters,
                    new_intent=True,
                    correction_marker=correction,
                    confidence=0.9,
                    inferred=inferred,
                )
            # A keyword inside an answer ("Homework 3 is due friday") is only a hint.
            return CorrectionCandidate(
                action=action,
                parameters=self._extract_for_context(context, text, correction),
                correction_marker=correction,
                confidence=0.5,
            )

        if context is not None:
            return CorrectionCandidate(
                parameters=self._extract_for_context(context, text, correction),
                correction_marker=correction,
                confidence=0.6,
            )

        return CorrectionCandidate(confidence=0.5)

    def _is_cancel(self, lowered: str, context: Optional[OngoingAction]) -> bool:
        if CANCEL_ONLY.match(lowered):
            return True
        if not CANCEL_PATTERN.search(lowered):
            return False
        # Free text may mention "stop" without meaning it ("stop by my office").
        missing = context.missing_parameters if context is not None else []
        return not (missing and parameter_kind(missing[0]) is ParameterKind.TEXT)

    def _classify_action(self, lowered: str) -> Optional[ActionKind]:
        for action, groups in ACTION_KEYWORDS:
            if all(any(_contains(lowered, keyword) for keyword in group) for group in groups):
                return action
        return None

    def _extract_for_action(
        self,
        action: ActionKind,
        text: str,
        history: Sequence[MessageTurn] = (),
    ) -> tuple[dict[str, Any], list[str]]:
        spec = spec_for(action)
        lowered = text.lower()
        emails = EMAIL_PATTERN.findall(text)
        updates: dict[str, Any] = {}
        inferred: list[str] = []

        for name in spec.parameters:
            value = self._value_for(name, text, lowered, emails)
            if value is not None:
                updates[name] = value

        if "course_name" in spec.parameters and "course_name" not in updates:
            recalled = _recent_course_name(history)
            if recalled is not None:
                updates["course_name"] = recalled
                inferred.append("course_name")

        return updates, inferred

    def _extract_for_context(self, context: OngoingAction, text: str, correction: bool) -> dict[str, Any]:
        spec = spec_for(context.action)
        lowered = text.lower()
        emails = EMAIL_PATTERN.findall(text)
        names = list(dict.fromkeys(context.required_parameters + spec.optional))
        missing = context.missing_parameters
        free_text = bool(missing) and missing[0] != "course_name" and parameter_kind(missing[0]) is ParameterKind.TEXT
        updates: dict[str, Any] = {}

        for name in names:
            kind = parameter_kind(name)
            if kind is ParameterKind.TEXT and name != "course_name":
                continue
            # "Quiz moved to Friday" is announcement text, not a course.
            if name == "course_name" and free_text and not COURSE_WORD.search(lowered):
                continue
            value = self._value_for(name, text, lowered, emails)
            if value is not None:
                updates[name] = value

        if updates or "@" in text:
            return updates

        # A bare answer fills the parameter that was just asked for.
        if missing and parameter_kind(missing[0]) is ParameterKind.TEXT:
            answer = CUE_PREFIX.sub("", text, count=1).strip() if correction else text
            answer = answer.strip(" .!")
            if missing[0] == "course_name":
                answer = re.sub(r"\s+(?:class|course)$", "", answer, flags=re.IGNORECASE)
                if answer.lower() in GENERIC_COURSE_NAMES:
                    return updates
            if answer:
                updates[missing[0]] = answer

        return updates

    def _value_for(self, name: str, text: str, lowered: str, emails: list[str]) -> Any:
        kind = parameter_kind(name)

        if kind is ParameterKind.EMAIL:
            return emails[0] if emails else None
        if kind is ParameterKind.EMAIL_LIST:
            return list(emails) if emails else None
        if kind is ParameterKind.DATE:
            match = DATE_PATTERN.search(lowered)
            return match.group(1) if match else None
        if kind is ParameterKind.TIME:
            match = TIME_PATTERN.search(lowered)
            return match.group(1) if match else None
        if name == "duration":
            match = DURATION_PATTERN.search(lowered)
            if not match:
                return None
            amount = int(match.group(1))
            return amount if match.group(2).startswith("min") else amount * 60
        if name == "course_name":
            return _course_name(text)
        if name in {"title", "name"}:
            return _title(text)
        if name in {"announcement_text", "message"}:
            match = TEXT_PATTERN.search(text)
            return match.group("text").strip() if match else None
        if name == "subject":
            match = SUBJECT_PATTERN.search(text)
            return _trim(match.group("subject")) if match else None
        return None


def _contains(lowered: str, keyword: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", lowered) is not None


def _course_name(text: str) -> Optional[str]:
    # Emails would otherwise be read as "to john@..." course names.
    cleaned = EMAIL_PATTERN.sub(" ", text)
    for pattern in COURSE_PATTERNS:
        match = pattern.search(cleaned.lower())
        if not match:
            continue
        start, end = match.span("name")
        name = _trim(cleaned[start:end])
        if name and name.lower() not in GENERIC_COURSE_NAMES:
            return name
    return None


def _recent_course_name(history: Sequence[MessageTurn]) -> Optional[str]:
    for turn in reversed(history):
        if turn.role != "user":
            continue
        name = _course_name(turn.content)
        if name is not None:
            return name
    return None


def _title(text: str) -> Optional[str]:
    quoted = QUOTED_PATTERN.search(text)
    if quoted:
        return quoted.group(1).strip()
    match = TITLE_PATTERN.search(text)
    if match:
        return _trim(match.group("title")) or None
    return None


def _trim(value: str) -> str:
    value = CONNECTORS.sub("", value.strip())
    return value.strip(" .,!?")
