import pytest

from consts import FORECAST_TICK_WINDOW, RAIN_DECAY_PER_TICK, TICKS_PER_DAY
from weather import (
    INITIAL_WEATHER,
    WeatherState,
    evolve_weather,
    forecast_rain,
    forecast_weather,
    sun_intensity_at,
)


def test_evolve_is_deterministic_per_seed_and_tick():
    a = evolve_weather(3, INITIAL_WEATHER, 17)
    b = evolve_weather(3, INITIAL_WEATHER, 17)
    assert a == b


def test_sun_follows_day_cycle():
    assert sun_intensity_at(0) == pytest.approx(0.0)
    assert sun_intensity_at(TICKS_PER_DAY // 4) == pytest.approx(1.0)
    # Night half of the day has no sun
    for tick in range(TICKS_PER_DAY // 2 + 1, TICKS_PER_DAY):
        assert sun_intensity_at(tick) == 0.0


def test_weather_values_stay_in_range():
    weather = INITIAL_WEATHER
    for tick in range(300):
        weather = evolve_weather(11, weather, tick)
        assert 0.0 <= weather.sun_intensity <= 1.0
        assert 0.0 <= weather.humidity <= 1.0
        assert 0.0 <= weather.rain_intensity <= 1.0
        assert 20.0 <= weather.temperature <= 30.0


def test_rain_decays_when_not_restarted():
    wet = WeatherState(25.0, 0.5, 0.5, 0.3)
    for tick in range(50):
        nxt = evolve_weather(5, wet, tick)
        # Either the shower restarted or it decayed by the fixed step
        assert nxt.rain_intensity == pytest.approx(0.5) or nxt.rain_intensity == pytest.approx(
            0.3 - RAIN_DECAY_PER_TICK
        )


def test_forecast_matches_real_evolution():
    current = evolve_weather(9, INITIAL_WEATHER, 0)
    forecast = forecast_weather(9, current, 1)
    assert len(forecast) == FORECAST_TICK_WINDOW

    weather = current
    for offset, predicted in enumerate(forecast):
        weather = evolve_weather(9, weather, 1 + offset)
        assert predicted == weather

    rain = forecast_rain(9, current, 1)
    assert rain == tuple(w.rain_intensity for w in forecast)


def test_different_seeds_differ_somewhere():
    a = forecast_rain(1, INITIAL_WEATHER, 0, window=2000)
    b = forecast_rain(2, INITIAL_WEATHER, 0, window=2000)
    assert a != b
