# carelink/services/location.py
from __future__ import annotations

from typing import Any, Dict, Optional

from carelink.db.store import DocumentStore
from carelink.realtime.hub import RealtimeHub
from carelink.services.ids import new_id, now_ms


async def record_location(
    store: DocumentStore,
    hub: RealtimeHub,
    user_id: Any,
    lat: Any,
    lng: Any,
    timestamp: Optional[int] = None,
) -> Dict[str, Any]:
    # history is append-only, no retention
    point = {
        "id": new_id(),
        "userId": user_id,
        "lat": lat,
        "lng": lng,
        "time": timestamp or now_ms(),
    }
    with store.transaction() as doc:
        doc["locationHistory"].append(point)

    await hub.publish(
        "locationUpdate",
        {"userId": user_id, "lat": lat, "lng": lng, "time": point["time"]},
        [user_id],
    )
    return point
