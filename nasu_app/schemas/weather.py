"""
Weather forecast and warning models.
"""

from typing import Any, List, Optional
from pydantic import Field

from .common import ApiModel


class Forecast(ApiModel):
    """Forecast for the northern Tochigi area."""

    publishing_office: Optional[str] = None
    report_datetime: Optional[str] = None
    target_area: str = "北部"
    time_series: Any = None
    temp_min: str = "N/A"
    temp_max: str = "N/A"
    temp_unit: str = "℃"


class WarningItem(ApiModel):
    type: str
    level: str
    date_time: str
    target_area: str


class WarningReport(ApiModel):
    report_datetime: str
    items: List[WarningItem] = Field(default_factory=list)
