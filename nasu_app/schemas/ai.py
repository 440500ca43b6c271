"""
Request and result models for the AI utility pages and the compliance review.
"""

from enum import Enum
from typing import Any, List, Optional
from pydantic import Field

from .common import ApiModel


class Gender(str, Enum):
    FEMALE = "female"
    MALE = "male"


class RelationshipContext(str, Enum):
    PRIVATE = "private"
    BUSINESS = "business"


class DailyFortuneRequest(ApiModel):
    birthday: str = ""


class LifeHacksRequest(ApiModel):
    theme: str = "時短料理"
    custom_theme: str = ""


class MorningComplimentRequest(ApiModel):
    pass


class RelationshipHintRequest(ApiModel):
    type: str = ""
    custom_type: str = ""
    context: RelationshipContext = RelationshipContext.PRIVATE
    user_gender: Gender = Gender.FEMALE
    target_gender: Gender = Gender.MALE


class RecipeRequest(ApiModel):
    ingredients: List[str] = Field(default_factory=list)
    servings: Optional[int] = Field(default=None, ge=1)


class PalmistryRequest(ApiModel):
    image: str = Field(default="", description="JPEG as a data URL or bare base64")


class PromptParts(ApiModel):
    """Everything needed for one Gemini call."""

    system_instruction: Optional[str] = None
    prompt: str
    image: Optional[bytes] = None


class AiResult(ApiModel):
    result: Any


class AiReviewRequest(ApiModel):
    uid: str = ""


class ReviewStatus(str, Enum):
    APPROVED = "approved"
    REQUIRES_CHANGES = "requires_changes"


class ReviewResult(ApiModel):
    status: str
    feedback: str = ""
