# Overview: Outbound push delivery. Currently a no-op that only logs.

from __future__ import annotations

from flask import current_app

from ..models import Notification, User


class PushGateway:
    """
    Delivers a persisted notification to the recipient's device.

    Device delivery is not wired to a provider yet; the durable Notification
    row is the contract, so this only records the attempt.
    """

    def deliver(self, recipient: User, notification: Notification) -> bool:
        if not recipient.device_token:
            current_app.logger.debug(
                "No device token for user %s; notification %s stored only",
                recipient.id, notification.id,
            )
            return False
        current_app.logger.debug(
            "Push delivery skipped (no provider) user=%s notification=%s",
            recipient.id, notification.id,
        )
        return False


default_gateway = PushGateway()
