"""Correction detector abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from assistant.engine.types import Classification, CorrectionCandidate
from assistant.memory.models import OngoingAction


class CorrectionDetector(ABC):
    """Relates an incoming candidate to the conversation's stored action."""

    @abstractmethod
    def classify(self, candidate: CorrectionCandidate, ongoing: Optional[OngoingAction]) -> Classification:
        """Return the decision for ``candidate`` given the stored action."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable summary of detector strategy."""
