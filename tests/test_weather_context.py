"""
tests/test_weather_context.py

天気・時間帯コンテキストのユニットテスト
"""
from datetime import datetime, timedelta
import pytest

from saferoute.models import (
    AlertSeverity,
    HourlyForecast,
    TimeOfDay,
    WeatherCondition,
)
from saferoute.services.weather_context import (
    calculate_time_context,
    generate_alerts,
    get_route_weather_tags,
    get_time_of_day,
    get_weather_icon,
    get_weather_message,
    is_dark_by_season,
    kelvin_to_fahrenheit,
    map_condition,
    mock_weather_snapshot,
    ms_to_mph,
)
from tests.conftest import (
    SATURDAY_AFTERNOON,
    WEEKDAY_LATE_NIGHT,
    WEEKDAY_NOON,
    WEEKDAY_RUSH,
    make_weather,
)


def _hour(now: datetime, offset: int, condition=WeatherCondition.CLEAR, pop: int = 0) -> HourlyForecast:
    return HourlyForecast(
        time=now + timedelta(hours=offset),
        temp=60,
        condition=condition,
        precip_probability=pop,
    )


class TestConversions:
    """単位変換・天気コード変換のテスト"""

    @pytest.mark.parametrize("weather_id,expected", [
        (211, WeatherCondition.THUNDERSTORM),
        (301, WeatherCondition.DRIZZLE),
        (502, WeatherCondition.RAIN),
        (601, WeatherCondition.SNOW),
        (741, WeatherCondition.FOG),
        (800, WeatherCondition.CLEAR),
        (803, WeatherCondition.CLOUDS),
    ])
    def test_map_condition(self, weather_id, expected):
        assert map_condition(weather_id) == expected

    def test_kelvin_to_fahrenheit(self):
        assert kelvin_to_fahrenheit(273.15) == 32
        assert kelvin_to_fahrenheit(295.37) == 72

    def test_ms_to_mph(self):
        assert ms_to_mph(10) == 22
        assert ms_to_mph(0) == 0


class TestTimeContext:
    """時間帯コンテキストのテスト"""

    @pytest.mark.parametrize("hour,expected", [
        (0, TimeOfDay.NIGHT),
        (1, TimeOfDay.LATE_NIGHT),
        (4, TimeOfDay.LATE_NIGHT),
        (5, TimeOfDay.EARLY_MORNING),
        (7, TimeOfDay.MORNING),
        (12, TimeOfDay.MIDDAY),
        (14, TimeOfDay.AFTERNOON),
        (17, TimeOfDay.EVENING),
        (21, TimeOfDay.NIGHT),
        (23, TimeOfDay.NIGHT),
    ])
    def test_time_of_day_bands(self, hour, expected):
        assert get_time_of_day(hour) == expected

    def test_weekday_rush_hour(self):
        ctx = calculate_time_context(WEEKDAY_RUSH)
        assert ctx.is_rush_hour is True
        assert ctx.is_weekend is False
        assert ctx.time_of_day == TimeOfDay.MORNING
        assert ctx.display_time == "8:15 AM"

    def test_weekend_is_never_rush_hour(self):
        saturday_morning = datetime(2024, 6, 15, 8, 0)
        ctx = calculate_time_context(saturday_morning)
        assert ctx.is_weekend is True
        assert ctx.is_rush_hour is False

    def test_rush_hour_window_is_half_open(self):
        assert calculate_time_context(datetime(2024, 6, 12, 9, 0)).is_rush_hour is False
        assert calculate_time_context(datetime(2024, 6, 12, 18, 59)).is_rush_hour is True

    def test_seasonal_darkness(self):
        """日の出・日の入り不明時は季節推定"""
        # 夏: 5:30-20:00
        assert is_dark_by_season(datetime(2024, 6, 12, 20, 30)) is True
        assert is_dark_by_season(datetime(2024, 6, 12, 19, 30)) is False
        # 冬: 6:30-17:30
        assert is_dark_by_season(datetime(2024, 12, 12, 18, 0)) is True
        assert is_dark_by_season(datetime(2024, 12, 12, 6, 0)) is True
        assert is_dark_by_season(datetime(2024, 12, 12, 12, 0)) is False

    def test_sun_times_override_season(self):
        """日の出・日の入りがあればそれを優先する"""
        now = WEEKDAY_NOON
        sunrise = int((now.replace(hour=13, minute=0)).timestamp())
        sunset = int((now.replace(hour=21, minute=0)).timestamp())

        ctx = calculate_time_context(now, sunrise, sunset)

        assert ctx.is_dark is True
        assert ctx.sunrise_time == "1:00 PM"
        assert ctx.sunset_time == "9:00 PM"

    def test_late_night_is_dark(self):
        ctx = calculate_time_context(WEEKDAY_LATE_NIGHT)
        assert ctx.time_of_day == TimeOfDay.LATE_NIGHT
        assert ctx.is_dark is True
        assert ctx.display_time == "2:30 AM"

    def test_saturday_afternoon(self):
        ctx = calculate_time_context(SATURDAY_AFTERNOON)
        assert ctx.is_weekend is True
        assert ctx.is_dark is False
        assert ctx.display_time == "3:00 PM"


class TestAlerts:
    """天気アラートのテスト"""

    def test_clear_weather_has_no_alerts(self):
        assert generate_alerts(make_weather()) == []

    def test_rain_expected(self):
        now = WEEKDAY_NOON
        weather = make_weather(
            WeatherCondition.CLOUDS,
            hourly=[_hour(now, 0), _hour(now, 1, pop=70)],
        )
        alerts = generate_alerts(weather, now=now)

        assert [a.title for a in alerts] == ["Rain Expected"]
        assert alerts[0].severity == AlertSeverity.YELLOW
        assert alerts[0].message == "Rain likely in ~60 min, covered route recommended"

    def test_rain_expected_skipped_when_already_raining(self):
        now = WEEKDAY_NOON
        weather = make_weather(WeatherCondition.RAIN, hourly=[_hour(now, 0, WeatherCondition.RAIN)])
        titles = [a.title for a in generate_alerts(weather, now=now)]
        assert "Rain Expected" not in titles
        assert titles == ["Currently Raining"]

    def test_thunderstorm_in_forecast(self):
        now = WEEKDAY_NOON
        weather = make_weather(
            WeatherCondition.CLOUDS,
            hourly=[_hour(now, 0), _hour(now, 1), _hour(now, 2, WeatherCondition.THUNDERSTORM)],
        )
        alerts = generate_alerts(weather, now=now)
        assert alerts[0].title == "Thunderstorm Warning"
        assert alerts[0].severity == AlertSeverity.RED

    def test_heat_by_feels_like(self):
        alerts = generate_alerts(make_weather(temp=88, feels_like=97))
        assert [a.title for a in alerts] == ["Heat Advisory"]

    def test_fixed_evaluation_order(self):
        """複数のアラートは固定順（先頭がトップアラート）"""
        weather = make_weather(
            WeatherCondition.SNOW,
            temp=20,
            wind_speed=25,
            visibility=800,
        )
        titles = [a.title for a in generate_alerts(weather)]
        assert titles == ["Cold Weather", "Windy Conditions", "Low Visibility", "Snow"]

    def test_drizzle_counts_as_raining(self):
        titles = [a.title for a in generate_alerts(make_weather(WeatherCondition.DRIZZLE))]
        assert titles == ["Currently Raining"]

    def test_drizzle_with_rain_forecast(self):
        """霧雨中の降雨予報は Rain Expected と Currently Raining の両方を出す"""
        now = WEEKDAY_NOON
        weather = make_weather(
            WeatherCondition.DRIZZLE,
            hourly=[_hour(now, 0, WeatherCondition.DRIZZLE), _hour(now, 1, WeatherCondition.RAIN)],
        )
        titles = [a.title for a in generate_alerts(weather, now=now)]
        assert titles == ["Rain Expected", "Currently Raining"]


class TestPresentation:
    """表示用ヘルパーのテスト"""

    def test_route_weather_tags(self):
        weather = make_weather(WeatherCondition.RAIN, temp=90, wind_speed=20, visibility=1500)
        assert get_route_weather_tags(weather) == [
            "☂️ Covered routes preferred",
            "🌳 Shaded routes preferred",
            "🏠 Wind-protected",
            "🌫️ Low visibility",
        ]

    def test_route_weather_tags_without_weather(self):
        assert get_route_weather_tags(None) == []

    def test_weather_icon(self):
        assert get_weather_icon(WeatherCondition.CLEAR, "01d") == "☀️"
        assert get_weather_icon(WeatherCondition.CLEAR, "01n") == "🌙"
        assert get_weather_icon(WeatherCondition.SNOW) == "❄️"

    def test_message_clear(self):
        assert get_weather_message(make_weather(temp=70)) == "☀️ 70°F Clear · Great walking weather"

    def test_message_rain_expected_takes_priority(self):
        now = WEEKDAY_NOON
        weather = make_weather(
            WeatherCondition.CLOUDS,
            temp=65,
            hourly=[_hour(now, 0), _hour(now, 1, pop=80)],
        )
        assert get_weather_message(weather) == "☁️ 65°F · Rain expected in ~1 hour"

    def test_message_cold(self):
        assert get_weather_message(make_weather(WeatherCondition.CLOUDS, temp=20)) == (
            "☁️ 20°F · Cold, prefer shorter routes"
        )

    def test_message_without_weather(self):
        assert get_weather_message(None) == ""

    def test_mock_snapshot(self):
        now = WEEKDAY_NOON
        weather = mock_weather_snapshot(now)

        assert weather.is_mock is True
        assert weather.feels_like == 70
        assert weather.humidity == 45
        assert weather.wind_speed == 8
        assert weather.uv_index == 5
        assert weather.visibility == 10000
        assert len(weather.hourly) == 12
        assert [h.temp for h in weather.hourly[:3]] == [72, 71, 70]
        assert all(h.precip_probability == 10 for h in weather.hourly)
        assert weather.hourly[0].time == now
