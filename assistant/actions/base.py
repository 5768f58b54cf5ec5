"""Base classes and types for executing finalized actions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from assistant.engine.types import ActionKind


@dataclass(slots=True)
class ActionContext:
    """Everything a handler needs to execute one finalized action."""

    conversation_id: str
    action: ActionKind
    parameters: Mapping[str, Any]
    extras: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ActionResult:
    """Standard action handler response payload."""

    content: str
    data: dict[str, Any] = field(default_factory=dict)
    success: bool = True


class ActionHandler(ABC):
    """Executes finalized actions against the classroom backend."""

    name: str

    @abstractmethod
    async def run(self, context: ActionContext) -> ActionResult:
        """Execute the action described by ``context``."""

    def describe(self) -> str:
        """Return a human-readable description for observability dashboards."""

        return self.__doc__ or self.name
