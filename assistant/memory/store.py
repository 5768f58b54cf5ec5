"""Ongoing-action and message-history store abstractions with an in-memory implementation."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from contextlib import AbstractContextManager
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from assistant.engine.catalog import spec_for
from assistant.engine.errors import NoActiveAction
from assistant.engine.types import ActionKind
from assistant.memory.locks import KeyedLock
from assistant.memory.models import MessageTurn, OngoingAction

logger = logging.getLogger("classroom.store")

Clock = Callable[[], datetime]


class ActionStore(ABC):
    """Abstract interface for reading and writing in-flight actions."""

    @abstractmethod
    def start(
        self,
        conversation_id: str,
        action: ActionKind,
        required_parameters: Optional[Sequence[str]] = None,
        initial_parameters: Optional[Mapping[str, Any]] = None,
    ) -> OngoingAction:
        """Create or replace the action tracked for a conversation."""

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[OngoingAction]:
        """Return the live action for a conversation, or ``None``."""

    @abstractmethod
    def merge_parameters(self, conversation_id: str, new_parameters: Mapping[str, Any]) -> OngoingAction:
        """Overwrite collected parameters key by key (last write wins)."""

    @abstractmethod
    def request_confirmation(self, conversation_id: str) -> OngoingAction:
        """Mark a complete action as waiting for the user's yes/no."""

    @abstractmethod
    def complete(self, conversation_id: str) -> None:
        """Forget the action for a conversation. Idempotent."""

    @abstractmethod
    def append_turn(self, turn: MessageTurn) -> None:
        """Remember a single conversational turn."""

    @abstractmethod
    def fetch_recent_turns(self, conversation_id: str, limit: int = 5) -> Sequence[MessageTurn]:
        """Return the most recent turns for a conversation, oldest first."""

    @abstractmethod
    def reset(self, conversation_id: str) -> None:
        """Clear the action and the turn history for a conversation."""

    @abstractmethod
    def lock(self, conversation_id: str) -> AbstractContextManager[None]:
        """Serialize access to a single conversation's entry."""

    @abstractmethod
    def sweep(self) -> int:
        """Evict stale entries and return how many were dropped."""

    @abstractmethod
    def conversations(self) -> Iterable[str]:
        """Iterate over conversations with a live action."""


class InMemoryActionStore(ActionStore):
    """Process-local store keyed by conversation id.

    Entries idle for longer than ``staleness`` are evicted on access and by
    :meth:`sweep`; expiry is silent, so a late follow-up is handled as if
    nothing were in progress. Mutations of one conversation are serialized
    through a per-conversation lock that callers may also hold across a
    whole read-modify-write turn.
    """

    def __init__(
        self,
        staleness: Optional[timedelta] = timedelta(minutes=30),
        clock: Clock = datetime.now,
        history_limit: int = 20,
    ) -> None:
        self.staleness = staleness
        self.history_limit = history_limit
        self._clock = clock
        self._entries: dict[str, OngoingAction] = {}
        self._history: dict[str, deque[MessageTurn]] = {}
        self._entries_lock = threading.Lock()
        self._locks = KeyedLock()

    def lock(self, conversation_id: str) -> AbstractContextManager[None]:
        return self._locks.hold(conversation_id)

    def start(
        self,
        conversation_id: str,
        action: ActionKind,
        required_parameters: Optional[Sequence[str]] = None,
        initial_parameters: Optional[Mapping[str, Any]] = None,
    ) -> OngoingAction:
        action = ActionKind.parse(action)
        if required_parameters is None:
            required_parameters = spec_for(action).required

        now = self._clock()
        entry = OngoingAction(
            conversation_id=conversation_id,
            action=action,
            required_parameters=tuple(required_parameters),
            collected_parameters=dict(initial_parameters or {}),
            created_at=now,
            last_updated_at=now,
        )

        with self.lock(conversation_id):
            with self._entries_lock:
                previous = self._entries.get(conversation_id)
                self._entries[conversation_id] = entry

        if previous is not None and not self._is_stale(previous, now):
            logger.info(
                "Replaced %s with %s for conversation %s",
                previous.action.value,
                action.value,
                conversation_id,
            )
        else:
            logger.debug("Started %s for conversation %s", action.value, conversation_id)
        return entry.copy()

    def get(self, conversation_id: str) -> Optional[OngoingAction]:
        with self.lock(conversation_id):
            entry = self._live_entry(conversation_id)
            return entry.copy() if entry else None

    def merge_parameters(self, conversation_id: str, new_parameters: Mapping[str, Any]) -> OngoingAction:
        with self.lock(conversation_id):
            entry = self._live_entry(conversation_id)
            if entry is None:
                raise NoActiveAction(conversation_id)
            entry.collected_parameters.update(new_parameters)
            entry.last_updated_at = self._clock()
            return entry.copy()

    def request_confirmation(self, conversation_id: str) -> OngoingAction:
        with self.lock(conversation_id):
            entry = self._live_entry(conversation_id)
            if entry is None:
                raise NoActiveAction(conversation_id)
            entry.awaiting_confirmation = True
            entry.last_updated_at = self._clock()
            return entry.copy()

    def complete(self, conversation_id: str) -> None:
        with self.lock(conversation_id):
            with self._entries_lock:
                self._entries.pop(conversation_id, None)

    def append_turn(self, turn: MessageTurn) -> None:
        stamped = MessageTurn(
            conversation_id=turn.conversation_id,
            role=turn.role,
            content=turn.content,
            created_at=self._clock(),
        )
        with self._entries_lock:
            history = self._history.get(turn.conversation_id)
            if history is None or self._is_stale_history(history, stamped.created_at):
                history = deque(maxlen=self.history_limit)
                self._history[turn.conversation_id] = history
            history.append(stamped)

    def fetch_recent_turns(self, conversation_id: str, limit: int = 5) -> Sequence[MessageTurn]:
        with self._entries_lock:
            history = self._history.get(conversation_id)
            if not history:
                return []
            if self._is_stale_history(history, self._clock()):
                del self._history[conversation_id]
                return []
            return list(history)[-limit:] if limit > 0 else []

    def reset(self, conversation_id: str) -> None:
        with self.lock(conversation_id):
            with self._entries_lock:
                self._entries.pop(conversation_id, None)
                self._history.pop(conversation_id, None)

    def sweep(self) -> int:
        now = self._clock()
        with self._entries_lock:
            stale = [cid for cid, entry in self._entries.items() if self._is_stale(entry, now)]
            for cid in [cid for cid, history in self._history.items() if self._is_stale_history(history, now)]:
                del self._history[cid]

        evicted = 0
        for conversation_id in stale:
            with self.lock(conversation_id):
                with self._entries_lock:
                    entry = self._entries.get(conversation_id)
                    # Re-check under the conversation lock; it may have been refreshed.
                    if entry is not None and self._is_stale(entry, self._clock()):
                        del self._entries[conversation_id]
                        evicted += 1

        if evicted:
            logger.info("Evicted %d stale conversation(s)", evicted)
        return evicted

    def conversations(self) -> Iterable[str]:
        now = self._clock()
        with self._entries_lock:
            return sorted(cid for cid, entry in self._entries.items() if not self._is_stale(entry, now))

    def _live_entry(self, conversation_id: str) -> Optional[OngoingAction]:
        with self._entries_lock:
            entry = self._entries.get(conversation_id)
            if entry is None:
                return None
            if self._is_stale(entry, self._clock()):
                del self._entries[conversation_id]
                logger.debug("Conversation %s expired", conversation_id)
                return None
            return entry

    def _is_stale(self, entry: OngoingAction, now: datetime) -> bool:
        if self.staleness is None:
            return False
        return now - entry.last_updated_at > self.staleness

    def _is_stale_history(self, history: deque[MessageTurn], now: datetime) -> bool:
        if self.staleness is None or not history:
            return False
        return now - history[-1].created_at > self.staleness

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)
