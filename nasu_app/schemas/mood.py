"""
Mood tracker models.
"""

from typing import Any, List, Optional
from dateutil import parser as date_parser
from pydantic import Field, field_validator

from .common import ApiModel, FirestoreDocument

MOOD_OPTIONS = ["😡", "😢", "🙂", "😄", "🤩"]


class MoodLogRequest(ApiModel):
    """One day's mood entry."""

    date: str = Field(default="", description="YYYY-MM-DD")
    mood: str = ""
    memo: str = ""

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: str) -> str:
        if not v:
            return ""
        return date_parser.isoparse(v).date().isoformat()

    @field_validator("memo")
    @classmethod
    def strip_memo(cls, v: str) -> str:
        return (v or "").strip()


class MoodLog(FirestoreDocument):
    date: str = ""
    mood: str = ""
    memo: str = ""
    created_at: Optional[Any] = None


class MoodShare(ApiModel):
    mood: str
    count: int
    percentage: str


class WeeklyMoodSummary(ApiModel):
    message: str
    moods: List[MoodShare] = Field(default_factory=list)
