# carelink/routers/realtime.py
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from carelink.db.store import DocumentStore, get_store
from carelink.realtime.events import EventContext, handle_frame
from carelink.realtime.hub import RealtimeHub, get_hub
from carelink.services.push import PushDispatcher, get_dispatcher

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    store: DocumentStore = Depends(get_store),
    hub: RealtimeHub = Depends(get_hub),
    dispatcher: PushDispatcher = Depends(get_dispatcher),
):
    """
    One socket per client. Text frames: {"event": "<name>", "data": {...}}

    inbound : join, updateLocation, sos, journal, medicationUpdate
    outbound: locationUpdate, sos, journal, medicationUpdate,
              appointmentCreated, appointmentReminder, notification
    """
    conn_id = await hub.connect(websocket)
    ctx = EventContext(conn_id, store, hub, dispatcher)
    try:
        while True:
            raw = await websocket.receive_text()
            await handle_frame(ctx, raw)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(conn_id)
