"""Structured logging helpers (PHI-safe)."""

import logging
from typing import Any

from clinic_api.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def build_log_context(
    *,
    appointment_id: str | None = None,
    series_id: str | None = None,
    session_type_id: str | None = None,
    status: str | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict.

    Patient names, phones and emails are never included.
    """
    context: dict[str, Any] = {}
    if appointment_id:
        context["appointment_id"] = appointment_id
    if series_id:
        context["series_id"] = series_id
    if session_type_id:
        context["session_type_id"] = session_type_id
    if status:
        context["status"] = status
    if request_id:
        context["request_id"] = request_id
    return context
