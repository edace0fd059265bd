import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer
from pydantic.alias_generators import to_camel

from notes_manager.db.models import TITLE_MAX_LENGTH


class CamelModel(BaseModel):
    """Models exchanged with the client use camelCase names on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==== Auth ====

# PUBLIC_INTERFACE
class RegisterRequest(CamelModel):
    """Schema for user registration input."""
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


# PUBLIC_INTERFACE
class LoginRequest(CamelModel):
    """Schema for login input."""
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# PUBLIC_INTERFACE
class SessionResponse(CamelModel):
    """Returned by register and login: the signed token plus display fields."""
    token: str
    email: str
    first_name: str
    last_name: str


# PUBLIC_INTERFACE
class UserInfo(CamelModel):
    """Profile of the authenticated user."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    first_name: str
    last_name: str
    email: str
    description: str = ""


# PUBLIC_INTERFACE
class UpdateProfileRequest(CamelModel):
    """Only the name and description fields are editable."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = ""


class MessageResponse(BaseModel):
    message: str


# ==== Token ====

# PUBLIC_INTERFACE
class TokenClaims(BaseModel):
    """Claims carried by a session token, validated after signature checks."""
    model_config = ConfigDict(extra="ignore")

    sub: str = Field(..., min_length=1)
    email: str
    jti: str
    iat: int
    exp: int


# ==== Notes ====

# PUBLIC_INTERFACE
class NoteCreate(CamelModel):
    """Input schema for creating a note. Notes are public unless stated otherwise."""
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1)
    is_public: bool = True


# PUBLIC_INTERFACE
class NoteUpdate(CamelModel):
    """Input schema for updating a note."""
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1)


# PUBLIC_INTERFACE
class NoteDto(CamelModel):
    """Returned data for a note. `userEmail` is only filled where owner context is shown."""
    id: int
    title: str
    description: str
    created_at: datetime.datetime
    user_email: Optional[str] = None

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime.datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
