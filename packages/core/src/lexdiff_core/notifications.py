"""In-memory per-user notification inbox.

Delivery (email, webhook, push) is someone else's job: this only records
what each user should be told and whether they have seen it.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    REVIEW_REQUESTED = "review_requested"
    COMMENT_ADDED = "comment_added"
    CHANGES_REQUESTED = "changes_requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass
class Notification:
    recipient: str
    notification_type: NotificationType
    session_id: str
    message: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False


class NotificationSystem:
    """Append-only inbox per user. Safe to share between threads."""

    def __init__(self):
        self._inboxes: dict[str, list[Notification]] = {}
        self._lock = threading.Lock()

    def notify(
        self,
        recipient: str,
        notification_type: NotificationType,
        session_id: str,
        message: str,
    ) -> Notification:
        notification = Notification(
            recipient=recipient,
            notification_type=notification_type,
            session_id=session_id,
            message=message,
        )
        with self._lock:
            self._inboxes.setdefault(recipient, []).append(notification)
        logger.debug("Queued %s notification for %s", notification_type.value, recipient)
        return notification

    def get_notifications(self, user_id: str) -> list[Notification]:
        with self._lock:
            return list(self._inboxes.get(user_id, []))

    def get_unread_notifications(self, user_id: str) -> list[Notification]:
        with self._lock:
            return [n for n in self._inboxes.get(user_id, []) if not n.read]

    def mark_read(self, user_id: str, notification_id: str) -> None:
        """Mark one notification as read. Unknown ids are ignored."""
        with self._lock:
            for notification in self._inboxes.get(user_id, []):
                if notification.id == notification_id:
                    notification.read = True
                    return

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification for a user as read; return how many changed."""
        count = 0
        with self._lock:
            for notification in self._inboxes.get(user_id, []):
                if not notification.read:
                    notification.read = True
                    count += 1
        return count
