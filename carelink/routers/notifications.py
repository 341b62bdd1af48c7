# carelink/routers/notifications.py
from fastapi import APIRouter, Depends, HTTPException, status

from carelink.db.store import DocumentStore, get_store
from carelink.services.notifications import get_notification, list_notifications, mark_read

router = APIRouter(prefix="/notifications", tags=["notification"])


@router.get("")
async def get_all_notifications(store: DocumentStore = Depends(get_store)):
    """All notifications in insertion order, read ones included."""
    return list_notifications(store)


@router.get("/{notification_id}")
async def get_one_notification(notification_id: str, store: DocumentStore = Depends(get_store)):
    n = get_notification(store, notification_id)
    if n is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Notification not found")
    return n


@router.delete("/{notification_id}")
async def read_notification(notification_id: str, store: DocumentStore = Depends(get_store)):
    """
    DELETE only marks the notification as read; nothing is removed.
    Unknown ids still answer {"ok": true}.
    """
    mark_read(store, notification_id)
    return {"ok": True}
