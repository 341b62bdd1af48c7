# carelink/services/appointments.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from carelink.db.store import DocumentStore
from carelink.realtime.hub import RealtimeHub
from carelink.services.ids import new_id, now_ms


def list_appointments(store: DocumentStore) -> List[Dict[str, Any]]:
    return store.load()["appointments"]


async def create_appointment(
    store: DocumentStore,
    hub: RealtimeHub,
    title: Any,
    time: int,
    for_user: Optional[Any] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    appt = {
        "id": new_id(),
        "title": title,
        "time": int(time),
        "forUser": for_user or None,
        "notes": notes or "",
        "createdAt": now_ms(),
    }
    with store.transaction() as doc:
        doc["appointments"].append(appt)

    # reminders are raised later by the reminder scanner
    await hub.publish("appointmentCreated", appt, [appt["forUser"]])
    return appt


def delete_appointment(store: DocumentStore, appointment_id: str) -> int:
    with store.transaction() as doc:
        before = len(doc["appointments"])
        doc["appointments"] = [a for a in doc["appointments"] if str(a.get("id")) != appointment_id]
        return before - len(doc["appointments"])
