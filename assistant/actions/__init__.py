"""Action handler package exports."""

from .base import ActionContext, ActionHandler, ActionResult
from .http import DryRunActionHandler, HttpActionHandler
from .router import ActionRouter

__all__ = [
    "ActionContext",
    "ActionHandler",
    "ActionResult",
    "ActionRouter",
    "DryRunActionHandler",
    "HttpActionHandler",
]
