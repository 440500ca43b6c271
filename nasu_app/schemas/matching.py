"""
Matching data models: quick-match wizard, AI store finder, job matching and
partner targeting.
"""

from enum import Enum
from typing import List, Optional
from pydantic import Field, field_validator, model_validator

from .common import ApiModel, FirestoreDocument, without_nulls


class QuickMatchSubmission(ApiModel):
    """Final wizard state posted by the quick-match page."""

    main_category: str = ""
    sub_category: str = ""
    area: str = ""
    values: List[str] = Field(default_factory=list)


class MatchRecordRequest(ApiModel):
    """Match count reported after a user views quick-match results."""

    store_id: Optional[str] = None
    actual_count: Optional[int] = None
    matched_user_id: Optional[str] = None

    @field_validator("actual_count", mode="before")
    @classmethod
    def require_json_number(cls, value):
        """Accept JSON numbers only; integral floats such as 2.0 become ints."""
        if value is None:
            return value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("actualCount must be a number")
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value


class MatchCount(ApiModel):
    """Totals of a `storeMatchCounters/{storeId}` document."""

    total_actual_matches: int = 0
    total_potential_matches: int = 0


class QuestionAnswer(ApiModel):
    """One question/answer pair from the AI store finder."""

    q: str = ""
    a: str = ""


class FindStoresRequest(ApiModel):
    """AI store finder request."""

    category: str = ""
    answers: List[QuestionAnswer] = Field(default_factory=list)


class PriceRange(str, Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"
    ANY = "any"


class SearchCriteria(ApiModel):
    """Criteria Gemini extracts from the finder answers."""

    keywords: List[str] = Field(default_factory=list)
    price_range: str = PriceRange.ANY.value
    must_haves: List[str] = Field(default_factory=list)

    @field_validator("price_range")
    @classmethod
    def normalize_price_range(cls, v: str) -> str:
        v = (v or "").lower()
        return v if v in {p.value for p in PriceRange} else PriceRange.ANY.value


class StoreMatch(ApiModel):
    """Store returned by the AI store finder with its match rate."""

    id: str
    name: str = ""
    description: str = ""
    category: str = ""
    image_url: str = ""
    match_rate: int = 0


class MatchValues(ApiModel):
    """Value tags grouped by theme; shared by job seekers and postings."""

    atmosphere: List[str] = Field(default_factory=list)
    growth: List[str] = Field(default_factory=list)
    wlb: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    organization: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def drop_null_fields(cls, data):
        return without_nulls(data)


class JobSeekerProfile(FirestoreDocument):
    """Job preferences stored on a user document."""

    desired_salary_min: float = 0
    desired_salary_max: float = 0
    desired_location: str = ""
    desired_job_types: List[str] = Field(default_factory=list)
    skills: str = ""
    desired_employment_type: str = ""
    preferred_working_hours: str = ""
    preferred_working_days: List[str] = Field(default_factory=list)
    matching_values: MatchValues = Field(default_factory=MatchValues)


class JobPosting(FirestoreDocument):
    """A `jobs/{jobId}` document."""

    job_title: str = ""
    salary_min: float = 0
    salary_max: float = 0
    location: str = ""
    job_category: str = ""
    employment_type: str = ""
    working_hours: str = ""
    working_days: List[str] = Field(default_factory=list)
    required_skills: str = ""
    welcome_skills: str = ""
    remote_policy: str = ""
    appeal_points: MatchValues = Field(default_factory=MatchValues)


class CompanyProfile(ApiModel):
    """Hiring company settings relevant to scoring."""

    appeal_points: MatchValues = Field(default_factory=MatchValues)
    min_match_score: Optional[int] = None


class RunEngineRequest(ApiModel):
    """Partner request to run the AI targeting engine."""

    accuracy_setting: float = 80


class TargetingMetrics(ApiModel):
    """Result of an AI targeting run."""

    target_count: int
    base_count: int
    accuracy: float
    segment_name: str
    industry_key: str = ""
