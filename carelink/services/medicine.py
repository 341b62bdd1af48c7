# carelink/services/medicine.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from carelink.db.store import DocumentStore
from carelink.realtime.hub import RealtimeHub
from carelink.services.ids import new_id, now_ms
from carelink.services.notifications import announce, build_notification
from carelink.services.push import PushDispatcher


def list_meds(store: DocumentStore) -> List[Dict[str, Any]]:
    return store.load()["meds"]


def list_med_history(store: DocumentStore) -> List[Dict[str, Any]]:
    return store.load()["medHistory"]


async def add_med(
    store: DocumentStore,
    hub: RealtimeHub,
    name: Any,
    dose: Any,
    time: Any,
    for_user: Optional[Any] = None,
) -> Dict[str, Any]:
    med = {
        "id": new_id(),
        "name": name,
        "dose": dose,
        "time": time,
        "forUser": for_user or None,
        "createdAt": now_ms(),
    }
    with store.transaction() as doc:
        doc["meds"].append(med)

    await hub.publish("medicationUpdate", {"med": med, "action": "added"}, [med["forUser"]])
    return med


async def remove_med(store: DocumentStore, hub: RealtimeHub, med_id: str) -> int:
    """Drop the medication with this id. Returns the number removed (0 is fine)."""
    with store.transaction() as doc:
        before = len(doc["meds"])
        removed_for = [m.get("forUser") for m in doc["meds"] if str(m.get("id")) == med_id]
        doc["meds"] = [m for m in doc["meds"] if str(m.get("id")) != med_id]
        removed = before - len(doc["meds"])

    await hub.publish("medicationUpdate", {"action": "removed", "id": med_id}, removed_for)
    return removed


async def mark_taken(store: DocumentStore, hub: RealtimeHub, med_id: Any, by: Any) -> Dict[str, Any]:
    # medId is not checked against meds
    record = {"id": new_id(), "medId": med_id, "by": by, "time": now_ms()}
    with store.transaction() as doc:
        doc["medHistory"].append(record)

    await hub.publish("medicationUpdate", {"action": "taken", "medId": med_id, "by": by}, [by])
    return record


async def relay_medication_update(
    store: DocumentStore,
    hub: RealtimeHub,
    dispatcher: PushDispatcher,
    payload: Dict[str, Any],
) -> Dict[str, Any]:
    """
    A client pushed a medicationUpdate over the socket: rebroadcast it
    and raise a `med` notification carrying the original payload.
    """
    recipients = [payload.get("forUser")]
    await hub.publish("medicationUpdate", payload, recipients)

    n = build_notification("med", "Medication updated", payload=payload)
    with store.transaction() as doc:
        doc["notifications"].append(n)

    await announce(hub, dispatcher, n, recipients)
    return n
