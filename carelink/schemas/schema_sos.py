from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Ident = Union[int, str]


class SosRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender: Ident = Field(alias="from")
    name: Optional[Any] = None
    # only the socket event carries its own time
    time: Optional[int] = None
