from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Ident = Union[int, str]


class CreateMedication(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Any = Field(...)
    dose: Any = Field(...)
    time: Any = Field(...)
    for_user: Optional[Ident] = Field(default=None, alias="forUser")


class MarkMedicationTaken(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    med_id: Ident = Field(alias="medId")
    by: Ident
