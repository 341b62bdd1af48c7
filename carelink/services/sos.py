# carelink/services/sos.py
from __future__ import annotations

from typing import Any, Dict, Optional

from carelink.db.store import DocumentStore
from carelink.realtime.hub import RealtimeHub
from carelink.services.ids import now_ms
from carelink.services.notifications import announce, build_notification
from carelink.services.push import PushDispatcher


async def raise_sos(
    store: DocumentStore,
    hub: RealtimeHub,
    dispatcher: PushDispatcher,
    sender: Any,
    name: Optional[Any] = None,
    time: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Persist an `sos` notification, broadcast `sos` + `notification`, push.
    Used by both POST /sos and the socket `sos` event.
    """
    at = time if time is not None else now_ms()
    n = build_notification("sos", f"SOS from {name or sender}", time=at, **{"from": sender})
    with store.transaction() as doc:
        doc["notifications"].append(n)

    await hub.publish("sos", {"from": sender, "name": name, "time": at}, [sender])
    await announce(hub, dispatcher, n, [sender])
    return n
