"""FastAPI application entry point for the classroom assistant."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from assistant.actions import ActionRouter, DryRunActionHandler, HttpActionHandler
from assistant.actions.base import ActionHandler
from assistant.api.conversations import create_conversations_router, turn_payload
from assistant.core.config import get_settings
from assistant.core.errors import engine_error_handler, unhandled_exception_handler
from assistant.core.logging import configure_logging, request_id_middleware
from assistant.core.metrics import MetricsCollector
from assistant.engine.catalog import describe_catalogue
from assistant.engine.conversation import ConversationEngine
from assistant.engine.detector import RuleBasedCorrectionDetector
from assistant.engine.errors import EngineError
from assistant.memory.models import MessageTurn
from assistant.memory.store import InMemoryActionStore
from assistant.nlu.keyword import KeywordExtractor

settings = get_settings()
logger = logging.getLogger("classroom.app")
action_logger = logging.getLogger("classroom.actions")

clock = settings.clock
action_store = InMemoryActionStore(staleness=settings.staleness, clock=clock)
detector = RuleBasedCorrectionDetector(new_intent_threshold=settings.new_intent_confidence_threshold)
engine = ConversationEngine(
    action_store,
    detector=detector,
    clock=clock,
    announce_abandoned=settings.announce_abandoned_actions,
)
extractor = KeywordExtractor()
metrics = MetricsCollector()

default_handler: ActionHandler
if settings.actions_base_url:
    default_handler = HttpActionHandler(
        str(settings.actions_base_url),
        timeout=settings.actions_timeout_seconds,
        token=settings.actions_api_token,
    )
else:
    default_handler = DryRunActionHandler()
action_router = ActionRouter({}, default=default_handler)

app = FastAPI(title=settings.app_name, version="0.1.0", docs_url="/docs")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)

app.include_router(create_conversations_router(engine, action_store, metrics))


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, Any]:
    """Return basic service status for monitoring."""

    return {
        "status": "ok",
        "environment": settings.environment,
        "action_handler": default_handler.name,
        "active_conversations": len(action_store),
    }


def get_engine() -> ConversationEngine:
    """Dependency injector for the conversation engine."""

    return engine


@app.get("/actions", tags=["actions"])
async def list_actions() -> list[dict[str, Any]]:
    """Describe every action the assistant can collect parameters for."""

    return describe_catalogue()


@app.post("/chat", tags=["chat"])
async def chat(message: dict, request: Request, engine: ConversationEngine = Depends(get_engine)) -> dict:
    """Primary chat endpoint: extract, advance the conversation, then execute."""

    conversation_id = message.get("conversation_id")
    content = message.get("content")

    if not conversation_id or not content or not isinstance(content, str):
        raise HTTPException(status_code=400, detail="conversation_id and content are required")

    history = engine.store.fetch_recent_turns(conversation_id, limit=6)
    candidate = extractor.extract(content, engine.store.get(conversation_id), history)
    engine.store.append_turn(MessageTurn(conversation_id, "user", content))
    result = engine.handle_turn(conversation_id, candidate)

    response = turn_payload(conversation_id, result, engine.store)
    response["action_result"] = None

    if result.ready and result.action is not None:
        try:
            action_result = await action_router.dispatch(
                conversation_id,
                result.action,
                result.parameters or {},
                extras={"request_id": getattr(request.state, "request_id", None)},
            )
            content_text = action_result.content
            response["action_result"] = {
                "content": action_result.content,
                "success": action_result.success,
                "data": action_result.data,
            }
        except Exception as exc:  # noqa: BLE001
            action_logger.exception("Action dispatch failed", extra={"action": result.action.value})
            content_text = "I ran into an issue completing that request. Could you try again later?"
            response["action_result"] = {"content": content_text, "success": False, "data": {"error": str(exc)}}

        response["message"] = " ".join(part for part in (result.notice, content_text) if part)

    if response["message"]:
        engine.store.append_turn(MessageTurn(conversation_id, "assistant", response["message"]))

    metrics.record_turn(result.decision.value, result.action.value if result.action else None, result.ready)
    return response


async def _sweep_forever(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        action_store.sweep()


@app.on_event("startup")
async def on_startup() -> None:
    level = configure_logging(settings.log_level)
    logger.info("Logging configured at %s level for %s environment", logging.getLevelName(level), settings.environment)
    logger.info("Executing finalized actions with %s", default_handler.describe().strip())
    logger.info("Turn classification: %s; extraction: %s", detector.describe(), extractor.describe().strip())
    app.state.sweeper = asyncio.create_task(_sweep_forever(settings.sweep_interval_seconds))


@app.on_event("shutdown")
async def on_shutdown() -> None:
    sweeper = getattr(app.state, "sweeper", None)
    if sweeper is not None:
        sweeper.cancel()


app.add_exception_handler(EngineError, engine_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/metrics", tags=["metrics"])
async def metrics_endpoint() -> dict:
    snapshot = metrics.snapshot()
    return {
        "total_turns": snapshot.total_turns,
        "decisions": snapshot.decisions,
        "actions": snapshot.actions,
        "completed_actions": snapshot.completed_actions,
        "active_conversations": len(action_store),
    }
