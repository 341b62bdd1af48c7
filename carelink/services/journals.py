# carelink/services/journals.py
from __future__ import annotations

from typing import Any, Dict, List

from carelink.db.store import DocumentStore
from carelink.realtime.hub import RealtimeHub
from carelink.services.ids import new_id, now_ms
from carelink.services.notifications import announce, build_notification
from carelink.services.push import PushDispatcher


def list_journals(store: DocumentStore) -> List[Dict[str, Any]]:
    return store.load()["journals"]


def build_entry(author: Any, text: Any = None, entry: Dict[str, Any] | None = None) -> Dict[str, Any]:
    """Fields sent by the client win; id/author/time are filled in when missing."""
    row = {"id": new_id(), "author": author, "text": text, "time": now_ms()}
    if entry:
        row.update({k: v for k, v in entry.items() if v is not None})
    return row


async def record_journal(
    store: DocumentStore,
    hub: RealtimeHub,
    dispatcher: PushDispatcher,
    entry: Dict[str, Any],
    author: Any,
    message: str | None = None,
) -> Dict[str, Any]:
    """HTTP posts say "New journal by", the socket event says "New journal from"."""
    n = build_notification("journal", message or f"New journal by {author}")
    with store.transaction() as doc:
        doc["journals"].append(entry)
        doc["notifications"].append(n)

    await hub.publish("journal", {"entry": entry, "author": author}, [author])
    await announce(hub, dispatcher, n, [author])
    return entry
