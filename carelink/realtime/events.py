# carelink/realtime/events.py
# Inbound socket events -> store + hub + push
from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict

from pydantic import ValidationError

from carelink.db.store import DocumentStore
from carelink.realtime.hub import RealtimeHub
from carelink.schemas.schema_realtime import JoinEvent, JournalEvent, LocationEvent
from carelink.schemas.schema_sos import SosRequest
from carelink.services.journals import build_entry, record_journal
from carelink.services.location import record_location
from carelink.services.medicine import relay_medication_update
from carelink.services.push import PushDispatcher
from carelink.services.sos import raise_sos

logger = logging.getLogger(__name__)


class EventContext:
    def __init__(self, conn_id: str, store: DocumentStore, hub: RealtimeHub, dispatcher: PushDispatcher):
        self.conn_id = conn_id
        self.store = store
        self.hub = hub
        self.dispatcher = dispatcher


async def on_join(ctx: EventContext, data: Any) -> None:
    body = JoinEvent.model_validate(data)
    ctx.hub.join(ctx.conn_id, body.user_id)


async def on_update_location(ctx: EventContext, data: Any) -> None:
    body = LocationEvent.model_validate(data)
    await record_location(ctx.store, ctx.hub, body.user_id, body.lat, body.lng, body.timestamp)


async def on_sos(ctx: EventContext, data: Any) -> None:
    body = SosRequest.model_validate(data)
    await raise_sos(ctx.store, ctx.hub, ctx.dispatcher, body.sender, body.name, body.time)


async def on_journal(ctx: EventContext, data: Any) -> None:
    body = JournalEvent.model_validate(data)
    entry = build_entry(body.author, entry=body.entry)
    await record_journal(
        ctx.store, ctx.hub, ctx.dispatcher, entry, body.author, message=f"New journal from {body.author}"
    )


async def on_medication_update(ctx: EventContext, data: Any) -> None:
    if not isinstance(data, dict):
        raise ValueError("medicationUpdate payload must be an object")
    await relay_medication_update(ctx.store, ctx.hub, ctx.dispatcher, data)


EVENT_HANDLERS: Dict[str, Callable[[EventContext, Any], Awaitable[None]]] = {
    "join": on_join,
    "updateLocation": on_update_location,
    "sos": on_sos,
    "journal": on_journal,
    "medicationUpdate": on_medication_update,
}


async def handle_frame(ctx: EventContext, raw: str) -> bool:
    """
    Handle one text frame {"event": ..., "data": ...}.
    Bad frames are logged and dropped; the connection stays open.
    Returns True when a handler ran to completion.
    """
    try:
        frame = json.loads(raw)
    except ValueError:
        logger.warning("[realtime] non-JSON frame from %s ignored", ctx.conn_id)
        return False

    event = frame.get("event") if isinstance(frame, dict) else None
    handler = EVENT_HANDLERS.get(event) if isinstance(event, str) else None
    if handler is None:
        logger.warning("[realtime] unknown event %r from %s ignored", event, ctx.conn_id)
        return False

    try:
        await handler(ctx, frame.get("data") or {})
    except (ValidationError, ValueError) as e:
        logger.warning("[realtime] bad %s payload from %s: %s", event, ctx.conn_id, e)
        return False
    except Exception:
        logger.exception("[realtime] %s handler failed for %s", event, ctx.conn_id)
        return False
    return True
