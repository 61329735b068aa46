"""
Safety acknowledgment schemas.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SafetyAcknowledgeRequest(BaseModel):
    safety_code: str = Field(..., min_length=1, max_length=100)
    protocol_version: str = Field("1", max_length=20)


class SafetyAcknowledgmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    safety_code: str
    protocol_version: str
    signed_at: datetime
