"""Rule-based correction detector."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from assistant.engine.base import CorrectionDetector
from assistant.engine.catalog import spec_for
from assistant.engine.types import ActionKind, Classification, CorrectionCandidate, TurnDecision
from assistant.memory.models import OngoingAction

logger = logging.getLogger("classroom.engine")


class RuleBasedCorrectionDetector(CorrectionDetector):
    """Classify turns as new actions, continuations or corrections.

    A different action kind only supersedes the stored one when the extractor
    flagged a new intent or is confident enough; otherwise the turn is read
    as an answer to the pending question. A turn that overwrites a collected
    value with a different one, or carries a correction cue alongside a
    value, is a correction even if it also fills missing parameters.
    """

    def __init__(self, new_intent_threshold: float = 0.8) -> None:
        self.new_intent_threshold = new_intent_threshold

    def describe(self) -> str:
        return f"Rule-based correction detector (new intent threshold {self.new_intent_threshold:.2f})"

    def classify(self, candidate: CorrectionCandidate, ongoing: Optional[OngoingAction]) -> Classification:
        if candidate.cancel:
            return Classification(
                decision=TurnDecision.CANCEL,
                action=ongoing.action if ongoing else None,
            )

        proposed = ActionKind.parse(candidate.action) if candidate.action is not None else None

        if ongoing is None:
            if proposed is None:
                return Classification(decision=TurnDecision.UNRECOGNIZED, action=None)
            parameters = self._accepted(proposed, None, candidate.parameters)
            return Classification(
                decision=TurnDecision.NEW_ACTION,
                action=proposed,
                parameters=parameters,
                filled=list(parameters),
            )

        if proposed is not None and proposed is not ongoing.action and self._is_strong_signal(candidate):
            parameters = self._accepted(proposed, None, candidate.parameters)
            logger.debug(
                "Switching %s from %s to %s",
                ongoing.conversation_id,
                ongoing.action.value,
                proposed.value,
            )
            return Classification(
                decision=TurnDecision.NEW_ACTION,
                action=proposed,
                parameters=parameters,
                filled=list(parameters),
                abandoned=ongoing.action,
            )

        deferred = proposed if proposed is not None and proposed is not ongoing.action else None
        parameters = self._accepted(ongoing.action, ongoing, candidate.parameters)
        collected = ongoing.collected_parameters

        corrected = {
            name: (collected[name], value)
            for name, value in parameters.items()
            if name in collected and collected[name] != value
        }
        filled = [name for name in parameters if name not in collected]

        if corrected or (candidate.correction_marker and parameters):
            decision = TurnDecision.CORRECTION
        else:
            decision = TurnDecision.CONTINUATION

        return Classification(
            decision=decision,
            action=ongoing.action,
            parameters=parameters,
            corrected=corrected,
            filled=filled,
            deferred=deferred,
        )

    def _is_strong_signal(self, candidate: CorrectionCandidate) -> bool:
        return candidate.new_intent or candidate.confidence >= self.new_intent_threshold

    def _accepted(
        self,
        action: ActionKind,
        ongoing: Optional[OngoingAction],
        parameters: Mapping[str, Any],
    ) -> dict[str, Any]:
        spec = spec_for(action)
        required = ongoing.required_parameters if ongoing else spec.required
        return {
            name: value
            for name, value in parameters.items()
            if value is not None and (name in required or spec.accepts(name))
        }
