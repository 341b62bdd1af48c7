# carelink/routers/meds.py
from fastapi import APIRouter, Depends

from carelink.db.store import DocumentStore, get_store
from carelink.realtime.hub import RealtimeHub, get_hub
from carelink.schemas.schema_medicine import CreateMedication, MarkMedicationTaken
from carelink.services.medicine import add_med, list_med_history, list_meds, mark_taken, remove_med

router = APIRouter(prefix="/meds", tags=["medication"])


@router.get("")
async def get_meds(store: DocumentStore = Depends(get_store)):
    return list_meds(store)


@router.post("")
async def create_med(
    body: CreateMedication,
    store: DocumentStore = Depends(get_store),
    hub: RealtimeHub = Depends(get_hub),
):
    """Creates a medication and broadcasts medicationUpdate {action: "added"}."""
    return await add_med(store, hub, body.name, body.dose, body.time, body.for_user)


@router.get("/history")
async def get_med_history(store: DocumentStore = Depends(get_store)):
    return list_med_history(store)


@router.post("/mark")
async def mark_med_taken(
    body: MarkMedicationTaken,
    store: DocumentStore = Depends(get_store),
    hub: RealtimeHub = Depends(get_hub),
):
    record = await mark_taken(store, hub, body.med_id, body.by)
    return {"ok": True, "record": record}


@router.delete("/{med_id}")
async def delete_med(
    med_id: str,
    store: DocumentStore = Depends(get_store),
    hub: RealtimeHub = Depends(get_hub),
):
    # unknown id is still ok
    await remove_med(store, hub, med_id)
    return {"ok": True}
