"""Chat schemas."""

from pydantic import BaseModel, Field


class ChatAppend(BaseModel):
    sender: str | None = None
    message: str = Field(..., min_length=1)
