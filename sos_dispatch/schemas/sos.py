"""SOS request schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from sos_dispatch.models.sos_request import SosStatus


class SosCreate(BaseModel):
    """Payload from the requester form. Location is checked by the service."""

    name: str | None = None
    phone: str | None = None
    message: str | None = None
    user_provided_address: str | None = Field(default=None, alias="userProvidedAddress")
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

    model_config = {"populate_by_name": True}


class SosStatusUpdate(BaseModel):
    status: SosStatus


class SosAssign(BaseModel):
    volunteer_id: int | None = Field(None, alias="volunteerId")
    status: SosStatus | None = None

    model_config = {"populate_by_name": True}


class VolunteerRef(BaseModel):
    id: int
    name: str


class ChatMessageResponse(BaseModel):
    sender: str
    message: str
    timestamp: datetime

    model_config = {"from_attributes": True}


class ChatEvent(ChatMessageResponse):
    """Chat message as broadcast to a room."""

    sos_id: str = Field(serialization_alias="sosId")


class SosResponse(BaseModel):
    """SOS record with the assigned volunteer resolved."""

    id: str
    requester_name: str
    phone: str
    message: str
    provided_address: str
    latitude: float
    longitude: float
    status: SosStatus
    assigned_volunteer_id: int | None
    assigned_volunteer: VolunteerRef | None
    chat: list[ChatMessageResponse] = []
    created_at: datetime
    updated_at: datetime


class SosAnalytics(BaseModel):
    total_sos: int
    sos_by_status: dict[str, int]
    total_volunteers: int
    volunteers_by_status: dict[str, int]
