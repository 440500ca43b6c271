"""
Unit tests for the JMA weather parsing and the cached weather service.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from nasu_app.exceptions import ExternalServiceError
from nasu_app.schemas.weather import Forecast, WarningReport
from nasu_app.services.weather_service import (
    FORECAST_ERROR_MESSAGE,
    WeatherService,
    find_warning_report_url,
    parse_forecast,
    parse_warning_report,
    warning_level,
)
from nasu_app.utils.helpers import TtlCache

FORECAST_JSON = [
    {
        "publishingOffice": "宇都宮地方気象台",
        "reportDatetime": "2025-07-01T11:00:00+09:00",
        "timeSeries": [
            {
                "timeDefines": ["2025-07-01T11:00:00+09:00"],
                "areas": [
                    {"area": {"name": "南部", "code": "090010"}, "weathers": ["晴れ"]},
                    {"area": {"name": "北部", "code": "090020"}, "weathers": ["くもり"]},
                ],
            }
        ],
    },
    {
        "publishingOffice": "宇都宮地方気象台",
        "tempSeries": {
            "areas": [
                {"area": {"name": "北部"}, "temps": ["18", "27"]},
            ]
        },
    },
]

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>高頻度（随時）</title>
  <entry>
    <title>気象特別警報・警報・注意報</title>
    <link type="application/xml" href="https://www.data.jma.go.jp/developer/xml/data/20250701_0_VPWW53_080000.xml"/>
  </entry>
  <entry>
    <title>気象特別警報・警報・注意報</title>
    <link type="application/xml" href="https://www.data.jma.go.jp/developer/xml/data/20250701_0_VPWW53_090000.xml"/>
  </entry>
</feed>
"""

WARNING_REPORT = """<?xml version="1.0" encoding="UTF-8"?>
<Report xmlns="http://xml.kishou.go.jp/jmaxml1/">
  <Head xmlns="http://xml.kishou.go.jp/jmaxml1/informationBasis1/">
    <Title>栃木県気象警報・注意報</Title>
    <ReportDateTime>2025-07-01T16:05:00+09:00</ReportDateTime>
  </Head>
  <Body xmlns="http://xml.kishou.go.jp/jmaxml1/body/meteorology1/">
    <Warning type="気象警報・注意報（一次細分区域等）">
      <Item>
        <Kind>
          <Name>大雨警報</Name>
          <Code>03</Code>
          <Status>発表</Status>
        </Kind>
        <Area>
          <Name>栃木県南部</Name>
          <Code>090010</Code>
        </Area>
      </Item>
      <Item>
        <Kind>
          <Name>大雨警報</Name>
          <Code>1003</Code>
          <Status>発表</Status>
        </Kind>
        <Kind>
          <Name>雷注意報</Name>
          <Code>14</Code>
          <Status>継続</Status>
        </Kind>
        <Kind>
          <Name>強風注意報</Name>
          <Code>15</Code>
          <Status>解除</Status>
        </Kind>
        <Area>
          <Name>栃木県北部</Name>
          <Code>090020</Code>
        </Area>
      </Item>
    </Warning>
  </Body>
</Report>
"""


class TestParseForecast:
    """Tests for parse_forecast."""

    def test_northern_area(self):
        forecast = parse_forecast(FORECAST_JSON)

        assert forecast.publishing_office == "宇都宮地方気象台"
        assert forecast.report_datetime == "2025-07-01T11:00:00+09:00"
        assert forecast.target_area == "北部"
        assert forecast.temp_min == "18"
        assert forecast.temp_max == "27"
        assert forecast.temp_unit == "℃"
        assert len(forecast.time_series) == 2

    def test_missing_temperatures_become_na(self):
        data = [FORECAST_JSON[0], {"tempSeries": {"areas": [{"area": {"name": "北部"}, "temps": ["", None]}]}}]
        forecast = parse_forecast(data)
        assert forecast.temp_min == "N/A"
        assert forecast.temp_max == "N/A"

    def test_missing_structure(self):
        with pytest.raises(ValueError):
            parse_forecast([FORECAST_JSON[0]])

    def test_missing_area(self):
        data = [FORECAST_JSON[0], {"tempSeries": {"areas": [{"area": {"name": "南部"}, "temps": ["1", "2"]}]}}]
        with pytest.raises(ValueError):
            parse_forecast(data)


class TestWarnings:
    """Tests for the JMA warnings feed and report."""

    def test_find_report_url_for_tochigi(self):
        url = find_warning_report_url(ATOM_FEED)
        assert url.endswith("_090000.xml")

    def test_find_report_url_none(self):
        feed = '<?xml version="1.0"?><feed xmlns="http://www.w3.org/2005/Atom"></feed>'
        assert find_warning_report_url(feed) is None

    @pytest.mark.parametrize("code,level", [("1003", "警報"), ("0003", "特別警報"), ("14", "注意報")])
    def test_warning_level(self, code, level):
        assert warning_level(code) == level

    def test_parse_report_keeps_active_northern_items(self):
        report = parse_warning_report(WARNING_REPORT)

        assert report.report_datetime == "2025-07-01T16:05:00+09:00"
        assert [(i.type, i.level) for i in report.items] == [("大雨警報", "警報"), ("雷注意報", "注意報")]
        assert all(i.target_area == "栃木県北部" for i in report.items)
        assert all(i.date_time == "2025-07-01T16:05:00+09:00" for i in report.items)

    def test_parse_report_without_head_uses_fallback(self):
        xml = '<?xml version="1.0"?><Report><Body></Body></Report>'
        report = parse_warning_report(xml, fallback_datetime="2025-07-01T00:00:00+09:00")
        assert report.report_datetime == "2025-07-01T00:00:00+09:00"
        assert report.items == []


class TestWeatherService:
    """Tests for WeatherService caching and fallbacks."""

    @pytest.fixture
    def clock(self):
        clock = MagicMock(return_value=0.0)
        return clock

    @pytest.fixture
    def jma(self):
        jma = MagicMock()
        jma.get_json = AsyncMock(return_value=FORECAST_JSON)
        jma.get_text = AsyncMock(side_effect=[ATOM_FEED, WARNING_REPORT])
        return jma

    @pytest.fixture
    def service(self, jma, clock):
        return WeatherService(
            jma,
            forecast_cache=TtlCache(3600, clock=clock),
            warnings_cache=TtlCache(600, clock=clock),
        )

    @pytest.mark.asyncio
    async def test_forecast_cached(self, service, jma):
        first = await service.get_forecast()
        second = await service.get_forecast()

        assert isinstance(first, Forecast)
        assert second is first
        assert jma.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_stale_forecast_served_on_failure(self, service, jma, clock):
        first = await service.get_forecast()
        clock.return_value = 7200.0
        jma.get_json.side_effect = RuntimeError("timeout")

        assert await service.get_forecast() is first

    @pytest.mark.asyncio
    async def test_forecast_failure_without_cache(self, service, jma):
        jma.get_json.side_effect = RuntimeError("timeout")

        with pytest.raises(ExternalServiceError) as exc_info:
            await service.get_forecast()
        assert exc_info.value.message == FORECAST_ERROR_MESSAGE
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_warnings_fetches_linked_report(self, service, jma):
        report = await service.get_warnings()

        assert isinstance(report, WarningReport)
        assert len(report.items) == 2
        assert jma.get_text.await_args_list[1].args[0].endswith("_090000.xml")

    @pytest.mark.asyncio
    async def test_no_report_in_feed_caches_empty(self, service, jma):
        jma.get_text = AsyncMock(return_value='<?xml version="1.0"?><feed></feed>')

        report = await service.get_warnings()
        again = await service.get_warnings()

        assert report.items == []
        assert again is report
        assert jma.get_text.await_count == 1
