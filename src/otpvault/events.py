"""Structured audit events for verification and secret handling.

Security-relevant steps call emit(). The host application subscribes sinks to
persist or forward them (database table, SIEM, alerting).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from otpvault.models import Event, Severity

logger = logging.getLogger(__name__)

EventSink = Callable[[Event], None]

_sinks: list[EventSink] = []

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.CRITICAL: logging.CRITICAL,
}


def subscribe(sink: EventSink) -> None:
    """Register a sink that receives every emitted event."""
    if sink not in _sinks:
        _sinks.append(sink)


def unsubscribe(sink: EventSink) -> None:
    if sink in _sinks:
        _sinks.remove(sink)


def clear_sinks() -> None:
    _sinks.clear()


def emit(
    category: str,
    severity: Severity | str,
    event_type: str,
    message: str,
    *,
    account: str | None = None,
    context: dict[str, Any] | None = None,
) -> Event:
    """Log an event and hand it to all subscribed sinks.

    A sink that raises is logged and skipped so the emitting operation still
    completes.
    """
    event = Event(
        category=category,
        severity=Severity(severity),
        event_type=event_type,
        message=message,
        account=account,
        context=context or {},
    )
    logger.log(_LEVELS[event.severity], "[event] %s/%s: %s", category, event_type, message)

    for sink in list(_sinks):
        try:
            sink(event)
        except Exception:
            logger.warning("Event sink failed for %s/%s", category, event_type, exc_info=True)
    return event
