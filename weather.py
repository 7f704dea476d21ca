import math
import numpy as np
from collections import namedtuple

from consts import (
    TICKS_PER_DAY,
    FORECAST_TICK_WINDOW,
    BASE_TEMPERATURE,
    TEMPERATURE_SWING,
    RAIN_START_PROBABILITY,
    RAIN_START_INTENSITY,
    RAIN_DECAY_PER_TICK,
)

# temperature in degrees C, the rest in [0, 1]
WeatherState = namedtuple(
    "WeatherState", ["temperature", "humidity", "sun_intensity", "rain_intensity"]
)

INITIAL_WEATHER = WeatherState(
    temperature=25.0, humidity=0.5, sun_intensity=0.8, rain_intensity=0.0
)


def tick_rng(seed, tick):
    """Generator seeded by (seed, tick) so every tick's draw is reproducible on its own."""
    return np.random.default_rng([int(seed), int(tick)])


def sun_intensity_at(tick, ticks_per_day=TICKS_PER_DAY):
    day_phase = (tick % ticks_per_day) / ticks_per_day
    return max(0.0, math.sin(2 * math.pi * day_phase))


def evolve_weather(seed, previous, tick):
    """
    Weather for `tick`, derived from the previous tick's weather.

    Sun follows a diurnal sine (zero through the night half), temperature and
    humidity are tied to the sun, and rain either starts at a fixed intensity
    with a small probability or decays linearly from the previous tick.
    """
    sun = sun_intensity_at(tick)

    if tick_rng(seed, tick).random() < RAIN_START_PROBABILITY:
        rain = RAIN_START_INTENSITY
    else:
        rain = max(0.0, previous.rain_intensity - RAIN_DECAY_PER_TICK)

    return WeatherState(
        temperature=BASE_TEMPERATURE + TEMPERATURE_SWING * sun,
        humidity=0.4 + 0.3 * (1 - sun),
        sun_intensity=sun,
        rain_intensity=rain,
    )


def forecast_weather(seed, current, start_tick, window=FORECAST_TICK_WINDOW):
    """Project `window` ticks starting at `start_tick` without touching any real state."""
    states = []
    weather = current
    for tick in range(start_tick, start_tick + window):
        weather = evolve_weather(seed, weather, tick)
        states.append(weather)
    return states


def forecast_rain(seed, current, start_tick, window=FORECAST_TICK_WINDOW):
    return tuple(w.rain_intensity for w in forecast_weather(seed, current, start_tick, window))
