"""Multi-turn conversational action engine.

``ConversationEngine.handle_turn`` is the single entry point: it classifies
an extracted candidate against the conversation's stored action, applies
the resulting start / merge / cancel to the store, and either hands back
the complete parameter set (clearing the stored entry) or the next prompt.
A turn that completes an action on uncertain grounds (a correction, a
deferred hint of another action, a value recalled from earlier messages, or
an action that always asks first) is not executed straight away: the user
is asked to confirm, and only a "yes" finalizes it.
The conversation's lock is held for the whole turn so two near-simultaneous
messages in one conversation cannot both read the same missing parameters.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from assistant.engine.base import CorrectionDetector
from assistant.engine.catalog import coerce_parameter, parameter_label, spec_for
from assistant.engine.completion import CompletionGenerator, format_value
from assistant.engine.detector import RuleBasedCorrectionDetector
from assistant.engine.errors import UnknownActionKind, UnresolvedExpression
from assistant.engine.types import (
    ActionKind,
    Classification,
    CorrectionCandidate,
    TurnDecision,
    TurnResult,
)
from assistant.memory.models import OngoingAction
from assistant.memory.store import ActionStore

logger = logging.getLogger("classroom.engine")

NOT_UNDERSTOOD = "I didn't understand that request. Could you rephrase it?"
NOTHING_TO_CANCEL = "There's nothing to cancel - I'm not working on anything right now. What would you like to do?"
CHANGE_PROMPT = 'No problem! What would you like to change? You can also say "cancel" to stop.'


class ConversationEngine:
    """Slot-filling state machine over an :class:`ActionStore`."""

    def __init__(
        self,
        store: ActionStore,
        detector: Optional[CorrectionDetector] = None,
        clock: Callable[[], datetime] = datetime.now,
        announce_abandoned: bool = False,
    ) -> None:
        self.store = store
        self.detector = detector or RuleBasedCorrectionDetector()
        self.completion = CompletionGenerator(store)
        self.clock = clock
        self.announce_abandoned = announce_abandoned

    def handle_turn(self, conversation_id: str, candidate: CorrectionCandidate) -> TurnResult:
        """Process one extracted message for ``conversation_id``."""

        with self.store.lock(conversation_id):
            ongoing = self.store.get(conversation_id)
            if ongoing is not None and ongoing.awaiting_confirmation and _is_bare_reply(candidate):
                return self._confirm(conversation_id, ongoing, candidate.confirmation)

            parameters, issues = self._coerce(candidate.parameters)

            try:
                classification = self.detector.classify(replace(candidate, parameters=parameters), ongoing)
            except UnknownActionKind as exc:
                logger.warning("Ignoring unknown action %r for conversation %s", exc.tag, conversation_id)
                return self._not_understood(ongoing)

            logger.info(
                "Conversation %s: %s (%s)",
                conversation_id,
                classification.decision.value,
                classification.action.value if classification.action else "-",
            )

            if classification.decision is TurnDecision.CANCEL:
                return self._cancel(conversation_id, ongoing)
            if classification.decision is TurnDecision.UNRECOGNIZED:
                return TurnResult(ready=False, decision=TurnDecision.UNRECOGNIZED, prompt=NOT_UNDERSTOOD)

            notices = self._apply(conversation_id, classification)
            issue_texts = self._issues_for(classification.action, issues)
            notices.extend(issue_texts)

            entry = self.store.get(conversation_id)
            notice = " ".join(notices) or None

            if entry is not None and entry.is_complete:
                if self._needs_confirmation(entry, classification, candidate):
                    if not entry.awaiting_confirmation:
                        entry = self.store.request_confirmation(conversation_id)
                    return TurnResult(
                        ready=False,
                        decision=classification.decision,
                        action=entry.action,
                        prompt=self.completion.confirmation_prompt(entry),
                        notice=notice,
                        issues=issue_texts,
                        awaiting_confirmation=True,
                    )
                return TurnResult(
                    ready=True,
                    decision=classification.decision,
                    action=entry.action,
                    parameters=self.completion.finalize(conversation_id),
                    notice=notice,
                    issues=issue_texts,
                )

            return TurnResult(
                ready=False,
                decision=classification.decision,
                action=classification.action,
                prompt=self.completion.prompt_for(entry) if entry else NOT_UNDERSTOOD,
                notice=notice,
                issues=issue_texts,
            )

    def _apply(self, conversation_id: str, classification: Classification) -> list[str]:
        notices: list[str] = []

        if classification.decision is TurnDecision.NEW_ACTION:
            self.store.start(conversation_id, classification.action, None, classification.parameters)
            if classification.abandoned is not None and self.announce_abandoned:
                notices.append(f"I've cancelled the previous request to {classification.abandoned.label}.")
            return notices

        if classification.parameters:
            self.store.merge_parameters(conversation_id, classification.parameters)

        if classification.decision is TurnDecision.CORRECTION and classification.corrected:
            notices.append(_correction_notice(classification.corrected))

        if classification.deferred is not None and not classification.parameters:
            notices.append(
                f"I'm still working on your request to {classification.action.label}. "
                f'If you want to {classification.deferred.label} instead, just say "cancel" first.'
            )
        return notices

    def _needs_confirmation(
        self,
        entry: OngoingAction,
        classification: Classification,
        candidate: CorrectionCandidate,
    ) -> bool:
        if entry.awaiting_confirmation or spec_for(entry.action).confirm:
            return True
        if classification.decision is TurnDecision.CORRECTION or classification.deferred is not None:
            return True
        return any(name in classification.parameters for name in candidate.inferred)

    def _confirm(self, conversation_id: str, ongoing: OngoingAction, reply: Optional[bool]) -> TurnResult:
        if reply is True:
            return TurnResult(
                ready=True,
                decision=TurnDecision.CONFIRMATION,
                action=ongoing.action,
                parameters=self.completion.finalize(conversation_id),
            )

        if reply is False:
            spec = spec_for(ongoing.action)
            if spec.confirm:
                # Actions that always ask start over from their required values.
                kept = {
                    name: value for name, value in ongoing.collected_parameters.items() if name not in spec.required
                }
                restarted = self.store.start(conversation_id, ongoing.action, ongoing.required_parameters, kept)
                return TurnResult(
                    ready=False,
                    decision=TurnDecision.CONFIRMATION,
                    action=ongoing.action,
                    notice="No problem!",
                    prompt=self.completion.prompt_for(restarted),
                )
            return TurnResult(
                ready=False,
                decision=TurnDecision.CONFIRMATION,
                action=ongoing.action,
                prompt=CHANGE_PROMPT,
                awaiting_confirmation=True,
            )

        return TurnResult(
            ready=False,
            decision=TurnDecision.CONFIRMATION,
            action=ongoing.action,
            prompt=(
                f'I\'m not sure if you want to proceed. Please say "yes" to {ongoing.action.label}, '
                'or "no" if you\'d like to change something.'
            ),
            awaiting_confirmation=True,
        )

    def _cancel(self, conversation_id: str, ongoing: Optional[OngoingAction]) -> TurnResult:
        if ongoing is None:
            return TurnResult(ready=False, decision=TurnDecision.CANCEL, prompt=NOTHING_TO_CANCEL)

        self.store.complete(conversation_id)
        return TurnResult(
            ready=False,
            decision=TurnDecision.CANCEL,
            action=ongoing.action,
            notice=f"Got it! I've stopped working on your request to {ongoing.action.label}.",
            prompt="What would you like to do instead?",
        )

    def _not_understood(self, ongoing: Optional[OngoingAction]) -> TurnResult:
        if ongoing is None or ongoing.is_complete:
            return TurnResult(ready=False, decision=TurnDecision.UNRECOGNIZED, prompt=NOT_UNDERSTOOD)
        return TurnResult(
            ready=False,
            decision=TurnDecision.UNRECOGNIZED,
            action=ongoing.action,
            notice=NOT_UNDERSTOOD,
            prompt=self.completion.prompt_for(ongoing),
        )

    def _coerce(self, parameters: Mapping[str, Any]) -> tuple[dict[str, Any], list[UnresolvedExpression]]:
        now = self.clock()
        coerced: dict[str, Any] = {}
        issues: list[UnresolvedExpression] = []
        for name, value in parameters.items():
            if value is None:
                continue
            try:
                coerced[name] = coerce_parameter(name, value, now)
            except UnresolvedExpression as exc:
                issues.append(exc)
        return coerced, issues

    def _issues_for(self, action: Optional[ActionKind], issues: list[UnresolvedExpression]) -> list[str]:
        if action is None:
            return []
        spec = spec_for(action)
        return [
            f'I couldn\'t understand "{issue.expression}" as {issue.expected} for the {parameter_label(issue.parameter)}.'
            for issue in issues
            if spec.accepts(issue.parameter)
        ]


def _is_bare_reply(candidate: CorrectionCandidate) -> bool:
    return not candidate.cancel and candidate.action is None and not candidate.parameters


def _correction_notice(corrected: Mapping[str, tuple[Any, Any]]) -> str:
    changes = [
        f"{format_value(new)} instead of {format_value(old)} for the {parameter_label(name)}"
        for name, (old, new) in corrected.items()
    ]
    return "Got it, using " + "; ".join(changes) + "."
