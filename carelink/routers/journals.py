# carelink/routers/journals.py
from fastapi import APIRouter, Depends

from carelink.db.store import DocumentStore, get_store
from carelink.realtime.hub import RealtimeHub, get_hub
from carelink.schemas.schema_journal import CreateJournal
from carelink.services.journals import build_entry, list_journals, record_journal
from carelink.services.push import PushDispatcher, get_dispatcher

router = APIRouter(prefix="/journals", tags=["journal"])


@router.get("")
async def get_journals(store: DocumentStore = Depends(get_store)):
    return list_journals(store)


@router.post("")
async def create_journal(
    body: CreateJournal,
    store: DocumentStore = Depends(get_store),
    hub: RealtimeHub = Depends(get_hub),
    dispatcher: PushDispatcher = Depends(get_dispatcher),
):
    """
    Stores the entry, then
    - broadcasts journal {entry, author}
    - stores + broadcasts a `journal` notification and pushes it
    """
    entry = build_entry(body.author, body.text)
    return await record_journal(store, hub, dispatcher, entry, body.author)
