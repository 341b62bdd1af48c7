from typing import Any, Union

from pydantic import BaseModel, Field

Ident = Union[int, str]


class CreateJournal(BaseModel):
    author: Ident
    text: Any = Field(...)
