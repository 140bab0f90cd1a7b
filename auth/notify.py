"""
auth/notify.py -- Outbound notification sinks.

The auth workflow only needs fire-and-forget delivery: notify() returns
nothing and the workflow never inspects delivery. No real mail transport is
wired in; LoggingNotificationSink simulates email by writing the message to
the application log, which is where developers pick up reset links locally.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger("propertyauth.notify")


class NotificationSink(Protocol):
    def notify(self, destination: str, message: str) -> None: ...


class LoggingNotificationSink:
    """Simulated email: logs destination and message at INFO."""

    def notify(self, destination: str, message: str) -> None:
        logger.info("EMAIL SIMULATION to=%s\n%s", destination, message)
