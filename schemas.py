# schemas.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from db.models import Role


class ApiModel(BaseModel):
    # Wire format is camelCase (accessToken, createdAt, userId...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _normalize_email(value):
    # Runs before length checks so padding does not count
    return value.strip().lower() if isinstance(value, str) else value


# --- Users and authentication ---

class EmailRequest(ApiModel):
    email: str = Field(min_length=3, max_length=255)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class Credentials(EmailRequest):
    password: str = Field(min_length=1, max_length=128)


class VerifyCodeRequest(EmailRequest):
    code: str = Field(min_length=1, max_length=16)


class UserUpdate(ApiModel):
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    password: Optional[str] = Field(default=None, min_length=1, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UserPublic(ApiModel):
    """Outward view of a user. Hashes are not part of it."""

    id: int
    email: str
    role: Role
    is_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(UserPublic):
    access_token: str


class TokenClaims(BaseModel):
    """Claim set carried by an access token."""

    id: int
    email: str
    role: Role


class Message(ApiModel):
    success: bool = True
    message: str


# --- Stadiums ---

class StadiumCreate(ApiModel):
    title: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1, max_length=255)


class StadiumUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = Field(default=None, min_length=1, max_length=255)

    @field_validator("title", "address")
    @classmethod
    def not_null(cls, value: Optional[str]) -> str:
        # Omit a field to keep it; null is not a valid title or address
        if value is None:
            raise ValueError("must not be null")
        return value


class StadiumOut(ApiModel):
    id: int
    title: Optional[str] = None
    address: Optional[str] = None


# --- Games ---

class GameCreate(ApiModel):
    home_team: str = Field(min_length=1, max_length=255)
    away_team: str = Field(min_length=1, max_length=255)
    commence_time: datetime
    stadium_id: Optional[int] = None


class GameOut(ApiModel):
    id: int
    home_team: str
    away_team: str
    commence_time: datetime
    stadium_id: Optional[int] = None


class UserGameOut(ApiModel):
    id: int
    user_id: int
    game_id: int
