# carelink/routers/push.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from carelink.db.store import DocumentStore, get_store

router = APIRouter(tags=["push"])


@router.post("/subscribe")
async def subscribe(
    subscription: Dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
):
    """
    Store a push subscription as-is. It needs a `token` (FCM registration
    token) to be deliverable; every other field is kept untouched.
    Subscriptions are not tied to a user: every notification goes to all of them.
    """
    with store.transaction() as doc:
        doc["webpushSubscriptions"].append(subscription)
    return {"ok": True}
