"""Lightweight in-memory metrics collector."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict


@dataclass
class MetricSnapshot:
    total_turns: int
    decisions: Dict[str, int]
    actions: Dict[str, int]
    completed_actions: Dict[str, int]


class MetricsCollector:
    """Thread-safe counter storage for basic service metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_turns = 0
        self._decisions: Counter[str] = Counter()
        self._actions: Counter[str] = Counter()
        self._completed: Counter[str] = Counter()

    def record_turn(self, decision: str, action: str | None, completed: bool = False) -> None:
        with self._lock:
            self._total_turns += 1
            self._decisions[decision] += 1
            if action:
                self._actions[action] += 1
                if completed:
                    self._completed[action] += 1

    def snapshot(self) -> MetricSnapshot:
        with self._lock:
            return MetricSnapshot(
                total_turns=self._total_turns,
                decisions=dict(self._decisions),
                actions=dict(self._actions),
                completed_actions=dict(self._completed),
            )
