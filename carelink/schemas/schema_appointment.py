from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Ident = Union[int, str]


class CreateAppointment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Any = Field(...)
    # epoch milliseconds
    time: int
    for_user: Optional[Ident] = Field(default=None, alias="forUser")
    notes: Optional[Any] = None
