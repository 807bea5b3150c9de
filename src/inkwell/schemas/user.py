"""Pydantic schemas for accounts and auth requests.

Learn: Pydantic v2 models validate request/response data. Separate
"Create" schemas (input) from "Read" schemas (output) for clean APIs.
JSON keys are camelCase on the wire (inviteToken, createdAt) and
snake_case in Python.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Role = Literal["user", "editor", "admin"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LoginRequest(CamelModel):
    email: str
    password: str


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    role: Role = "user"


class AdminRegisterRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    role: Optional[str] = None
    invite_token: str = ""


class UserRead(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    role: str
    created_at: datetime


class UserUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=255)
    role: Optional[Role] = None
