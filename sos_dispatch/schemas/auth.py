"""Auth schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr

from sos_dispatch.models.volunteer import VolunteerStatus


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class VolunteerRegister(BaseModel):
    name: str
    email: EmailStr
    password: str
    phone: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    id: int
    name: str


class VolunteerResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str | None
    status: VolunteerStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class VolunteerStatusUpdate(BaseModel):
    status: VolunteerStatus
