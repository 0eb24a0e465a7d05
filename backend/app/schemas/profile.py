"""Pydantic v2 response schema for profiles."""

import uuid

from pydantic import BaseModel, ConfigDict


class ProfileResponse(BaseModel):
    """Public profile information embedded in booking responses."""

    id: uuid.UUID
    full_name: str
    email: str | None = None
    role: str

    model_config = ConfigDict(from_attributes=True)
