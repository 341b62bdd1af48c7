# inbound socket event payloads
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Ident = Union[int, str]


class JoinEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Ident = Field(alias="userId")


class LocationEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Ident = Field(alias="userId")
    lat: float
    lng: float
    timestamp: Optional[int] = None


class JournalEvent(BaseModel):
    entry: Dict[str, Any]
    author: Ident
