"""
Canonical schema for the duty log pipeline.

This module defines the standardized representation of a single log entry
after normalization, the structured fields extracted from its text, and the
per-admin rollup produced by aggregation.

Design rationale:
- LogEntry is immutable; corrections are new entries, never edits
- All timestamps in UTC for consistency
- DutyRecord and AggregateStat are derived on demand and never persisted
- AggregateStat serializes with the field names the HTTP API has always used
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LogEntry(BaseModel):
    """
    Canonical representation of a single duty log message.

    Attributes:
        id: Opaque identifier (platform message id, or "manual-..." for
            entries synthesized by a correction)
        timestamp: UTC datetime when the message was posted
        title_text: Multi-line free text, None when the message carried no
            embed title or fields

    Notes:
        - Entries are frozen; the collection only grows, except for purges
        - An entry without title_text is kept but never yields a DutyRecord
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        description="Opaque entry identifier"
    )

    timestamp: datetime = Field(
        ...,
        description="UTC timestamp of the message"
    )

    title_text: Optional[str] = Field(
        default=None,
        description="Embed title (or joined field values)"
    )

    @field_validator("timestamp")
    @classmethod
    def _normalize_timezone(cls, value: datetime) -> datetime:
        return _as_utc(value)


class DutyRecord(BaseModel):
    """
    Structured duty-session fact extracted from one LogEntry.

    duration_minutes is signed: negative values come from manual deductions.
    """

    subject_name: str = Field(..., min_length=1)
    license_id: str = Field(..., min_length=1)
    duration_minutes: int


class AggregateStat(BaseModel):
    """
    Per-admin rollup of duty time.

    Attributes:
        subject_name: Admin name (wire name "admin")
        license_id: License from the last contributing record (wire name "license")
        total_minutes: Signed sum of durations, never clamped (wire name "totalMinutes")
        last_duty_timestamp: Latest timestamp among contributing entries,
            whatever the sign of their duration (wire name "lastDuty")
    """

    model_config = ConfigDict(populate_by_name=True)

    subject_name: str = Field(..., alias="admin")
    license_id: str = Field(..., alias="license")
    total_minutes: int = Field(0, alias="totalMinutes")
    last_duty_timestamp: Optional[datetime] = Field(default=None, alias="lastDuty")

    def to_api(self) -> dict:
        """JSON-ready dict using the API field names."""
        return self.model_dump(by_alias=True, mode="json")
