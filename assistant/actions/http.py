"""Handlers that hand finalized actions to the classroom REST backend."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from assistant.actions.base import ActionContext, ActionHandler, ActionResult
from assistant.engine.catalog import parameter_label, spec_for
from assistant.engine.completion import format_value

SUCCESS_MESSAGES = {
    "CREATE_COURSE": 'Your course "{name}" has been created.',
    "INVITE_STUDENT": "I've invited {email} to {course_name}.",
    "CREATE_ANNOUNCEMENT": "Your announcement has been posted in {course_name}.",
    "CREATE_ASSIGNMENT": 'Assignment "{title}" is live in {course_name}, due {due_date} at {due_time}.',
    "LIST_ASSIGNMENTS": "Here are the assignments for {course_name}.",
    "SHOW_ENROLLED_STUDENTS": "Here are the students enrolled in {course_name}.",
    "CREATE_MEETING": 'Meeting "{title}" is scheduled for {date} at {time}.',
    "SEND_EMAIL": "Your email to {recipient_email} has been sent.",
}


def success_message(context: ActionContext) -> str:
    template = SUCCESS_MESSAGES.get(context.action.value)
    values = {name: format_value(value) for name, value in context.parameters.items()}
    try:
        return template.format(**values) if template else "Done!"
    except KeyError:
        return "Done!"


class HttpActionHandler(ActionHandler):
    """Forward finalized actions to the classroom backend over HTTP."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = str(base_url).rstrip("/")
        self.timeout = timeout
        self._token = token
        self._transport = transport
        self._logger = logging.getLogger("classroom.actions")

    async def run(self, context: ActionContext) -> ActionResult:
        spec = spec_for(context.action)
        url = f"{self.base_url}/{spec.path}"
        payload: dict[str, Any] = dict(context.parameters)

        headers = {"X-Conversation-ID": context.conversation_id}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        request_id = context.extras.get("request_id")
        if request_id:
            headers["X-Request-ID"] = str(request_id)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                if spec.method == "GET":
                    response = await client.get(url, params=payload, headers=headers)
                else:
                    response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._logger.warning(
                "%s rejected by backend with %s",
                context.action.value,
                exc.response.status_code,
            )
            return ActionResult(
                content="The classroom service couldn't complete that request.",
                data={"status_code": exc.response.status_code, "url": url},
                success=False,
            )
        except httpx.HTTPError as exc:
            self._logger.exception("Calling %s failed", url)
            return ActionResult(
                content="I couldn't reach the classroom service. Please try again later.",
                data={"error": str(exc), "url": url},
                success=False,
            )

        data: dict[str, Any] = {"url": url, "status_code": response.status_code}
        if response.headers.get("content-type", "").startswith("application/json"):
            data["response"] = response.json()
        return ActionResult(content=success_message(context), data=data)


class DryRunActionHandler(ActionHandler):
    """Describe what would be executed when no backend is configured."""

    name = "dry_run"

    async def run(self, context: ActionContext) -> ActionResult:
        spec = spec_for(context.action)
        details = ", ".join(
            f"{parameter_label(name)}: {format_value(context.parameters[name])}"
            for name in spec.parameters
            if name in context.parameters
        )
        return ActionResult(
            content=f"Ready to {context.action.label} ({details}).",
            data={"dry_run": True, "parameters": dict(context.parameters)},
        )
