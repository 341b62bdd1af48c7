# carelink/services/notifications.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from carelink.db.store import DocumentStore
from carelink.realtime.hub import RealtimeHub
from carelink.services.ids import new_id, now_ms
from carelink.services.push import PushDispatcher

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("sos", "journal", "med", "appointment")


def build_notification(type_: str, message: str, time: Optional[int] = None, **extra: Any) -> Dict[str, Any]:
    """
    extra carries the per-type field: from (sos), payload (med), appointment (appointment).
    """
    if type_ not in NOTIFICATION_TYPES:
        raise ValueError(f"unknown notification type: {type_}")
    row = {"id": new_id(), "type": type_, "message": message}
    row.update(extra)
    row["time"] = time if time is not None else now_ms()
    row["read"] = False
    return row


async def announce(
    hub: RealtimeHub,
    dispatcher: PushDispatcher,
    notification: Dict[str, Any],
    recipients: Optional[Iterable[Any]] = None,
) -> None:
    """Publish an already persisted notification and hand it to push in the background."""
    await hub.publish("notification", notification, recipients)
    dispatcher.dispatch_in_background(notification)


def list_notifications(store: DocumentStore) -> List[Dict[str, Any]]:
    return store.load()["notifications"]


def get_notification(store: DocumentStore, notification_id: str) -> Optional[Dict[str, Any]]:
    for n in store.load()["notifications"]:
        if str(n.get("id")) == notification_id:
            return n
    return None


def mark_read(store: DocumentStore, notification_id: str) -> int:
    """Flip read=True on the matching id. Returns how many rows matched (0 is not an error)."""
    matched = 0
    with store.transaction() as doc:
        for n in doc["notifications"]:
            if str(n.get("id")) == notification_id:
                n["read"] = True
                matched += 1
    if not matched:
        logger.info("[notifications] mark_read: no notification with id=%s", notification_id)
    return matched
