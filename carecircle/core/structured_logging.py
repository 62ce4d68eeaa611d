"""Structured logging helpers (PHI-safe)."""

import logging
from typing import Any
from uuid import UUID

from carecircle.core.config import settings


def configure_logging() -> None:
    """Configure root logging once per process."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_log_context(
    *,
    user_id: UUID | str | None = None,
    circle_id: UUID | str | None = None,
    object_type: str | None = None,
    object_id: UUID | str | None = None,
    request_id: str | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict (identifiers only, never content)."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if circle_id:
        context["circle_id"] = str(circle_id)
    if object_type:
        context["object_type"] = object_type
    if object_id:
        context["object_id"] = str(object_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    return context
