# carelink/routers/appointments.py
from fastapi import APIRouter, Depends

from carelink.db.store import DocumentStore, get_store
from carelink.realtime.hub import RealtimeHub, get_hub
from carelink.schemas.schema_appointment import CreateAppointment
from carelink.services.appointments import create_appointment, delete_appointment, list_appointments

router = APIRouter(prefix="/appointments", tags=["appointment"])


@router.get("")
async def get_appointments(store: DocumentStore = Depends(get_store)):
    return list_appointments(store)


@router.post("")
async def add_appointment(
    body: CreateAppointment,
    store: DocumentStore = Depends(get_store),
    hub: RealtimeHub = Depends(get_hub),
):
    return await create_appointment(store, hub, body.title, body.time, body.for_user, body.notes)


@router.delete("/{appointment_id}")
async def remove_appointment(appointment_id: str, store: DocumentStore = Depends(get_store)):
    delete_appointment(store, appointment_id)
    return {"ok": True}
