"""Action router mapping action kinds to handler implementations."""

from __future__ import annotations

from typing import Any, Mapping

from assistant.actions.base import ActionContext, ActionHandler, ActionResult
from assistant.engine.types import ActionKind


class ActionRouter:
    """Dispatch finalized actions to concrete handlers."""

    def __init__(self, handlers: Mapping[ActionKind, ActionHandler], default: ActionHandler | None = None) -> None:
        self._handlers = handlers
        self._default = default

    def supports(self, action: ActionKind) -> bool:
        return action in self._handlers or self._default is not None

    async def dispatch(
        self,
        conversation_id: str,
        action: ActionKind,
        parameters: Mapping[str, Any],
        extras: dict | None = None,
    ) -> ActionResult:
        handler = self._handlers.get(action, self._default)
        if not handler:
            return ActionResult(
                content="I can't do that yet.",
                data={"action": action.value},
                success=False,
            )

        context = ActionContext(
            conversation_id=conversation_id,
            action=action,
            parameters=parameters,
            extras=extras or {},
        )
        return await handler.run(context)
