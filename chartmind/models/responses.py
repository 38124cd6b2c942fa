"""
Pydantic Models for API Responses
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class ClinicalNote(BaseModel):
    """SOAP note; every section is always present and non-empty"""
    model_config = ConfigDict(frozen=True)

    subjective: str = Field(min_length=1, description="Patient-reported history and symptoms")
    objective: str = Field(min_length=1, description="Examination findings and measurements")
    assessment: str = Field(min_length=1, description="Diagnosis or clinical impression")
    plan: str = Field(min_length=1, description="Treatment and follow-up plan")


class TranscriptionResponse(BaseModel):
    """Response for /api/transcribe"""
    transcription: str = Field(description="Transcribed text")
    success: bool = Field(default=True)
    timestamp: datetime = Field(description="Processing timestamp (UTC)")


class SOAPResponse(BaseModel):
    """Response for /api/generate-soap"""
    soap: ClinicalNote = Field(description="Validated SOAP note")
    success: bool = Field(default=True)
    timestamp: datetime = Field(description="Processing timestamp (UTC)")


class HealthCheckResponse(BaseModel):
    """Health Check Response"""
    status: str = Field(description="Service status (healthy/unhealthy)")
    timestamp: datetime = Field(description="Check timestamp")
    version: str = Field(description="Service version")
    message: str = Field(description="Human readable status message")


class ErrorResponse(BaseModel):
    """Standardized error response"""
    error: str = Field(description="Error summary")
    details: Optional[str] = Field(default=None, description="Additional error details")
    request_id: Optional[str] = Field(default=None, description="Request ID for debugging")
    timestamp: datetime = Field(description="Error timestamp")
