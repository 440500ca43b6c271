"""
Weather service: JMA forecast and warnings for northern Tochigi (Nasu area).
"""

from typing import Any, List, Optional
from bs4 import BeautifulSoup
from loguru import logger

from ..config import settings
from ..exceptions import ExternalServiceError
from ..schemas.weather import Forecast, WarningItem, WarningReport
from ..utils.api_clients import JmaClient
from ..utils.helpers import TtlCache, now_jst

TARGET_AREA_NAME = "北部"
TOCHIGI_PREF_CODE = "090000"
TOCHIGI_NORTH_AREA_CODE = "090020"
TOCHIGI_NORTH_AREA_NAME = "栃木県北部"
ALERT_TITLE_IDENTIFIER = "気象警報・注意報"
ACTIVE_STATUSES = ("発表", "継続")

FORECAST_ERROR_MESSAGE = "気象データの取得および処理中にエラーが発生しました。"
WARNINGS_ERROR_MESSAGE = "警報・注意報データの取得および処理中にエラーが発生しました。"

FORECAST_CACHE_KEY = "forecast"
WARNINGS_CACHE_KEY = "warnings"


def _area_name(entry: Any) -> Optional[str]:
    return ((entry or {}).get("area") or {}).get("name")


def _temp_or_na(temps: List[Any], index: int) -> str:
    if index < len(temps) and temps[index]:
        return temps[index]
    return "N/A"


def parse_forecast(data: Any) -> Forecast:
    """
    Extract the northern area forecast from the prefecture forecast JSON.

    Args:
        data: Decoded forecast JSON (a list of reports)

    Returns:
        Forecast for the target area

    Raises:
        ValueError: If the structure or the area is missing
    """
    reports = data if isinstance(data, list) else []
    forecast_data = next((d for d in reports if d.get("timeSeries")), None)
    temperature_data = next((d for d in reports if d.get("tempSeries")), None)
    if forecast_data is None or temperature_data is None:
        raise ValueError("JMA data is missing timeSeries/tempSeries")

    target_forecast = next(
        (
            ts for ts in forecast_data["timeSeries"]
            if any(_area_name(area) == TARGET_AREA_NAME for area in ts.get("areas") or [])
        ),
        None,
    )
    temp_areas = (temperature_data.get("tempSeries") or {}).get("areas") or []
    target_temp = next((a for a in temp_areas if _area_name(a) == TARGET_AREA_NAME), None)
    if target_forecast is None or target_temp is None:
        raise ValueError(f"Could not find forecast data for area: {TARGET_AREA_NAME}")

    temps = target_temp.get("temps") or []
    return Forecast(
        publishing_office=forecast_data.get("publishingOffice"),
        report_datetime=forecast_data.get("reportDatetime"),
        target_area=TARGET_AREA_NAME,
        time_series=target_forecast.get("areas"),
        temp_min=_temp_or_na(temps, 0),
        temp_max=_temp_or_na(temps, 1),
    )


def find_warning_report_url(atom_xml: str) -> Optional[str]:
    """Link of the newest Tochigi warnings report in the JMA Atom feed."""
    soup = BeautifulSoup(atom_xml, "xml")
    for entry in soup.find_all("entry"):
        title = entry.find("title")
        link = entry.find("link")
        href = link.get("href") if link else None
        if title and ALERT_TITLE_IDENTIFIER in title.get_text() and href and TOCHIGI_PREF_CODE in href:
            return href
    return None


def _child_text(tag: Any, *names: str) -> str:
    for name in names:
        child = tag.find(name, recursive=False)
        if child is not None:
            return child.get_text(strip=True)
    return ""


def warning_level(kind_code: str) -> str:
    """警報 for code prefix 10, 特別警報 for prefix 00, 注意報 otherwise."""
    if kind_code.startswith("10"):
        return "警報"
    if kind_code.startswith("00"):
        return "特別警報"
    return "注意報"


def parse_warning_report(report_xml: str, fallback_datetime: Optional[str] = None) -> WarningReport:
    """
    Extract active warnings for the northern Tochigi area from a JMA report.

    Args:
        report_xml: Warnings report XML
        fallback_datetime: Report time used when the head has none

    Returns:
        Report time and active warning items
    """
    soup = BeautifulSoup(report_xml, "xml")
    report_datetime = fallback_datetime or now_jst().isoformat()
    head = soup.find("Head")
    if head is not None:
        report_datetime = _child_text(head, "ReportDateTime") or report_datetime

    items: List[WarningItem] = []
    body_items = [
        item
        for warning in soup.find_all("Warning")
        for item in warning.find_all("Item", recursive=False)
    ]
    for item in body_items:
        area = item.find("Area", recursive=False)
        if area is None:
            continue
        area_code = _child_text(area, "Code")
        area_name = _child_text(area, "Name")
        if area_code != TOCHIGI_NORTH_AREA_CODE and area_name != TOCHIGI_NORTH_AREA_NAME:
            continue

        for kind in item.find_all("Kind", recursive=False):
            kind_code = _child_text(kind, "KindCode", "Code")
            kind_name = _child_text(kind, "KindName", "Name")
            status = _child_text(kind, "Status")
            if not kind_code or not kind_name or status not in ACTIVE_STATUSES:
                continue
            items.append(WarningItem(
                type=kind_name,
                level=warning_level(kind_code),
                date_time=report_datetime,
                target_area=area_name,
            ))

    return WarningReport(report_datetime=report_datetime, items=items)


class WeatherService:
    """Cached JMA lookups."""

    def __init__(
        self,
        jma: JmaClient,
        forecast_cache: Optional[TtlCache] = None,
        warnings_cache: Optional[TtlCache] = None,
    ):
        self.jma = jma
        self.forecast_cache = forecast_cache or TtlCache(settings.forecast_cache_ttl)
        self.warnings_cache = warnings_cache or TtlCache(settings.warnings_cache_ttl)

    async def get_forecast(self) -> Forecast:
        """
        Forecast for the Nasu area, cached for an hour.

        The last good forecast is served when JMA fails.
        """
        cached = self.forecast_cache.get(FORECAST_CACHE_KEY)
        if cached is not None:
            return cached

        try:
            forecast = parse_forecast(await self.jma.get_json(settings.jma_forecast_url))
        except Exception as e:
            logger.error(f"Failed to fetch or process JMA forecast: {e}")
            stale = self.forecast_cache.get_stale(FORECAST_CACHE_KEY)
            if stale is not None:
                logger.info("Returning stale forecast as fallback")
                return stale
            raise ExternalServiceError(FORECAST_ERROR_MESSAGE) from e

        self.forecast_cache.set(FORECAST_CACHE_KEY, forecast)
        return forecast

    async def get_warnings(self) -> WarningReport:
        """
        Active warnings for the Nasu area, cached for ten minutes.

        An empty report is cached too. The last good report is served when JMA fails.
        """
        cached = self.warnings_cache.get(WARNINGS_CACHE_KEY)
        if cached is not None:
            return cached

        try:
            url = find_warning_report_url(await self.jma.get_text(settings.jma_atom_feed_url))
            if url is None:
                report = WarningReport(report_datetime=now_jst().isoformat())
            else:
                report = parse_warning_report(await self.jma.get_text(url))
        except Exception as e:
            logger.error(f"Failed to fetch or process JMA warnings: {e}")
            stale = self.warnings_cache.get_stale(WARNINGS_CACHE_KEY)
            if stale is not None:
                logger.info("Returning stale warnings as fallback")
                return stale
            raise ExternalServiceError(WARNINGS_ERROR_MESSAGE) from e

        self.warnings_cache.set(WARNINGS_CACHE_KEY, report)
        return report
