"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ProcessingStatus(str, Enum):
    """Lifecycle of a generation job as exposed via the API."""

    uploaded = "uploaded"
    processing = "processing"
    completed = "completed"
    failed = "failed"


class FileUploadResponse(BaseModel):
    """Immediate response payload after accepting a file upload."""

    file_id: str = Field(..., description="Generated identifier for the uploaded file.")


class MeterReadingRecord(BaseModel):
    """A meter reading emitted while interpreting the uploaded file."""

    nmi: str
    timestamp: str = Field(..., description="Interval start as YYYY-MM-DD HH:MM:SS.")
    consumption: float


class ProcessingResult(BaseModel):
    """Full record representing a generation job and the readings emitted so far."""

    file_id: str
    filename: str
    status: ProcessingStatus
    uploaded_at: datetime
    processed_at: Optional[datetime] = None
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    statement_count: int = Field(
        default=0, ge=0, description="Number of INSERT statements the readings produce."
    )
    readings: List[MeterReadingRecord] = Field(default_factory=list)
    error: Optional[str] = None
