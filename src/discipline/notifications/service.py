"""Notification persistence and Redis pub/sub delivery.

Only rank-ups and challenge outcomes reach this module. Decay and exploit
penalties are silent and never produce a notification.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from discipline.config import get_settings
from discipline.db.models import Notification
from discipline.engine.state import NotificationEvent

logger = logging.getLogger(__name__)

ACTION_LABELS = {
    "rank_up": "View Rank",
    "challenge_completed": "View Challenges",
    "challenge_failed": "View Challenges",
    "title_earned": "View Titles",
}


def add_notifications(
    db: AsyncSession,
    user_id: str,
    events: Iterable[NotificationEvent],
    now: datetime,
) -> list[Notification]:
    """Stage notification rows in the current transaction."""
    rows = []
    for event in events:
        row = Notification(
            user_id=user_id,
            type="discipline",
            subtype=event.subtype,
            title=event.title,
            description=event.description,
            action_url=event.action_url,
            action_label=ACTION_LABELS.get(event.subtype),
            payload=event.payload or None,
            created_at=now,
        )
        db.add(row)
        rows.append(row)
    return rows


async def push_notification_to_user(redis: object | None, notification: Notification) -> None:
    """Publish a formatted notification to ``ws:user:{user_id}``.

    The notification must already be committed (have an ``id``).
    """
    if redis is None:
        return

    ws_payload = {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "type": notification.type,
            "subtype": notification.subtype,
            "title": notification.title,
            "description": notification.description,
            "timestamp": notification.created_at.isoformat() if notification.created_at else None,
            "read": False,
            "actionUrl": notification.action_url,
            "actionLabel": notification.action_label,
        },
    }
    channel = f"{get_settings().notification_channel_prefix}:{notification.user_id}"
    try:
        await redis.publish(channel, json.dumps(ws_payload))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to push notification via %s", channel, exc_info=True)


async def push_all(redis: object | None, notifications: Iterable[Notification]) -> None:
    for notification in notifications:
        await push_notification_to_user(redis, notification)
