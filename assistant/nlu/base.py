"""Intent/entity extractor interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from assistant.engine.types import CorrectionCandidate
from assistant.memory.models import MessageTurn, OngoingAction


class Extractor(ABC):
    """Turns one raw user message into a structured candidate.

    ``context`` is the conversation's ongoing action, if any, so the
    extractor can read a bare answer ("john@gmail.com") as a value for the
    parameter that was just asked for. ``history`` holds the most recent
    turns, oldest first, for values the user mentioned earlier.
    """

    @abstractmethod
    def extract(
        self,
        message: str,
        context: Optional[OngoingAction] = None,
        history: Sequence[MessageTurn] = (),
    ) -> CorrectionCandidate:
        """Return the candidate extracted from ``message``."""

    def describe(self) -> str:
        return self.__doc__ or type(self).__name__
