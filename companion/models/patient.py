"""
Request models for patient care records (medications, doses, sleep logs,
daily activities).
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MedicationCreate(BaseModel):
    """Body of POST /patients/{id}/medications."""
    name: str = Field(..., min_length=1, description="Medication name")
    dosage: str = Field(..., min_length=1, examples=["10mg"])
    timeOfDay: str = Field(..., min_length=1, examples=["morning"])
    reminderTime: Optional[str] = Field(default=None, examples=["08:00"])


class SleepLogCreate(BaseModel):
    """
    Body of POST /patients/{id}/sleep-logs.

    ``date`` is an ISO datetime; only its calendar date is stored, and a
    second log for the same date replaces the first.
    """
    date: datetime
    bedtime: Optional[datetime] = None
    wakeTime: Optional[datetime] = None
    totalHours: Optional[float] = Field(default=None, gt=0)
    quality: Optional[str] = None
    notes: Optional[str] = None


class DoseCreate(BaseModel):
    """
    Body of POST /patients/{id}/medications/{medicationId}/doses.

    Leave ``takenAt`` empty for a skipped or still pending dose.
    """
    scheduledFor: datetime
    takenAt: Optional[datetime] = None
    skipped: bool = False
    notes: Optional[str] = Field(default=None, examples=["Felt nauseous"])


class DailyActivityCreate(BaseModel):
    """Body of POST /patients/{id}/daily-activities."""
    date: datetime
    activityType: str = Field(..., min_length=1, examples=["walk"])
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0, description="Minutes")
