# carelink/routers/sos.py
from fastapi import APIRouter, Depends

from carelink.db.store import DocumentStore, get_store
from carelink.realtime.hub import RealtimeHub, get_hub
from carelink.schemas.schema_sos import SosRequest
from carelink.services.push import PushDispatcher, get_dispatcher
from carelink.services.sos import raise_sos

router = APIRouter(tags=["sos"])


@router.post("/sos")
async def send_sos(
    body: SosRequest,
    store: DocumentStore = Depends(get_store),
    hub: RealtimeHub = Depends(get_hub),
    dispatcher: PushDispatcher = Depends(get_dispatcher),
):
    # the server clock stamps HTTP alerts
    await raise_sos(store, hub, dispatcher, body.sender, body.name)
    return {"ok": True}
