"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    church_id: str | None = None,
    member_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict holding identifiers only, never names or contact details."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if church_id:
        context["church_id"] = church_id
    if member_id:
        context["member_id"] = member_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
