"""
JMA weather routes for the Nasu area.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, Response

from ..config import settings
from ..dependencies import get_weather_service
from ..services.weather_service import WeatherService

router = APIRouter(prefix="/api/weather", tags=["weather"])


def _cache_control(max_age: int) -> str:
    return f"public, max-age={max_age}, must-revalidate"


@router.get("/forecast")
async def forecast(
    response: Response,
    service: WeatherService = Depends(get_weather_service),
) -> Dict[str, Any]:
    result = await service.get_forecast()
    response.headers["Cache-Control"] = _cache_control(settings.forecast_cache_ttl)
    return result.to_api()


@router.get("/warnings")
async def warnings(
    response: Response,
    service: WeatherService = Depends(get_weather_service),
) -> Dict[str, Any]:
    result = await service.get_warnings()
    response.headers["Cache-Control"] = _cache_control(settings.warnings_cache_ttl)
    return result.to_api()
