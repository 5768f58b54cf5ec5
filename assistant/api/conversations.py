"""API routes for inspecting and driving conversations directly."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Response

from assistant.core.metrics import MetricsCollector
from assistant.engine.conversation import ConversationEngine
from assistant.engine.errors import NoActiveAction
from assistant.engine.types import CorrectionCandidate, TurnResult
from assistant.memory.store import ActionStore


def create_conversations_router(
    engine: ConversationEngine,
    store: ActionStore,
    metrics: MetricsCollector | None = None,
) -> APIRouter:
    router = APIRouter(prefix="/conversations", tags=["conversations"])

    @router.get("")
    async def list_conversations() -> list[str]:
        """List conversations with an action in progress."""

        return list(store.conversations())

    @router.get("/{conversation_id}")
    async def get_conversation(conversation_id: str) -> dict:
        ongoing = store.get(conversation_id)
        if ongoing is None:
            raise NoActiveAction(conversation_id)
        return ongoing.to_dict()

    @router.delete("/{conversation_id}", status_code=204)
    async def reset_conversation(conversation_id: str) -> Response:
        store.reset(conversation_id)
        return Response(status_code=204)

    @router.post("/{conversation_id}/turns")
    async def submit_turn(conversation_id: str, payload: dict) -> dict:
        """Feed an already-extracted candidate into the engine.

        Lets an upstream language model do extraction while this service
        keeps the conversation state.
        """

        candidate = candidate_from_payload(payload)
        result = engine.handle_turn(conversation_id, candidate)
        if metrics is not None:
            metrics.record_turn(result.decision.value, result.action.value if result.action else None, result.ready)
        return turn_payload(conversation_id, result, store)

    return router


def candidate_from_payload(payload: dict[str, Any]) -> CorrectionCandidate:
    parameters = payload.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise HTTPException(status_code=400, detail="parameters must be an object")

    confidence = payload.get("confidence", 1.0)
    try:
        confidence = float(confidence)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="confidence must be a number") from None

    confirmation = payload.get("confirmation")
    if confirmation is not None and not isinstance(confirmation, bool):
        raise HTTPException(status_code=400, detail="confirmation must be true, false or null")

    return CorrectionCandidate(
        action=payload.get("action"),
        parameters=parameters,
        new_intent=bool(payload.get("new_intent", False)),
        correction_marker=bool(payload.get("correction_marker", False)),
        cancel=bool(payload.get("cancel", False)),
        confidence=confidence,
        confirmation=confirmation,
    )


def turn_payload(conversation_id: str, result: TurnResult, store: ActionStore) -> dict[str, Any]:
    ongoing = store.get(conversation_id)
    return {
        "conversation_id": conversation_id,
        "decision": result.decision.value,
        "action": result.action.value if result.action else None,
        "ready": result.ready,
        "message": result.message,
        "prompt": result.prompt,
        "notice": result.notice,
        "issues": list(result.issues),
        "parameters": result.parameters or {},
        "awaiting_confirmation": result.awaiting_confirmation,
        "ongoing": ongoing.to_dict() if ongoing else None,
    }
