"""
Pydantic Models for API Requests
"""

from pydantic import BaseModel, Field, StrictStr


class GenerateSOAPRequest(BaseModel):
    """Request Model for SOAP note generation"""
    transcription: StrictStr = Field(
        min_length=1,
        description="Transcribed text of the medical encounter"
    )
