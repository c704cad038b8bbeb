"""Notifier that writes alerts to the application log.

Stands in for SMS or push delivery; every call counts as delivered.
"""

from __future__ import annotations

import logging

from crowd_signal.domain.enums import CrowdLabel
from crowd_signal.domain.subscription import AlertSubscription

logger = logging.getLogger(__name__)


class LoggingNotifier:
    async def notify(
        self, subscription: AlertSubscription, venue_name: str, label: CrowdLabel
    ) -> bool:
        logger.info(
            "ALERT: %s reached %s for device %s",
            venue_name, label.value, subscription.device_id,
        )
        return True
