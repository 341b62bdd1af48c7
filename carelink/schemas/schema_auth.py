from typing import Any

from pydantic import BaseModel, Field


# presence only, values are stored as sent
class RegisterRequest(BaseModel):
    role: Any = Field(...)
    name: Any = Field(...)
    email: Any = Field(...)
    password: Any = Field(...)


class LoginRequest(BaseModel):
    email: Any = Field(...)
    password: Any = Field(...)
