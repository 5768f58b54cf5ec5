"""Dataclasses representing conversation turns and in-flight actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from assistant.engine.types import ActionKind


@dataclass(slots=True)
class MessageTurn:
    """Single conversational turn kept as prior context for extraction."""

    conversation_id: str
    role: str
    content: str
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(slots=True)
class OngoingAction:
    """A partially specified action waiting for more parameters."""

    conversation_id: str
    action: ActionKind
    required_parameters: tuple[str, ...]
    collected_parameters: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    last_updated_at: datetime = field(default_factory=datetime.now)
    awaiting_confirmation: bool = False

    @property
    def missing_parameters(self) -> list[str]:
        """Required parameters not yet collected, in declared order."""

        return [name for name in self.required_parameters if name not in self.collected_parameters]

    @property
    def is_complete(self) -> bool:
        return not self.missing_parameters

    def copy(self) -> "OngoingAction":
        return OngoingAction(
            conversation_id=self.conversation_id,
            action=self.action,
            required_parameters=self.required_parameters,
            collected_parameters=dict(self.collected_parameters),
            created_at=self.created_at,
            last_updated_at=self.last_updated_at,
            awaiting_confirmation=self.awaiting_confirmation,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "action": self.action.value,
            "required_parameters": list(self.required_parameters),
            "collected_parameters": dict(self.collected_parameters),
            "missing_parameters": self.missing_parameters,
            "awaiting_confirmation": self.awaiting_confirmation,
            "created_at": self.created_at.isoformat(),
            "last_updated_at": self.last_updated_at.isoformat(),
        }
