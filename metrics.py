from collections import namedtuple

from consts import IDEAL_MIN_MOISTURE, IDEAL_MAX_MOISTURE, TICKS_PER_DAY

# percent_too_dry / percent_too_wet are on a 0-100 scale. Consumers that
# want a [0, 1] fraction must divide by 100 (see to_fraction).
Metrics = namedtuple(
    "Metrics",
    [
        "avg_moisture",
        "min_moisture",
        "max_moisture",
        "percent_too_dry",
        "percent_too_wet",
        "irrigation_on",
        "ticks_since_last_irrigation",
        "time_of_day",
        "episode_progress",
        "water_used_this_tick",
        "cumulative_water_used",
        "plant_count",
    ],
)

PlantStatus = namedtuple("PlantStatus", ["dry", "flooded", "healthy"])


def to_fraction(percent):
    """Convert a 0-100 percentage from Metrics to a [0, 1] fraction."""
    return min(1.0, max(0.0, percent / 100.0))


def plant_status(garden):
    """Count planted tiles below, above and inside the healthy moisture band."""
    values = garden.moisture[garden.plants]
    dry = int((values < IDEAL_MIN_MOISTURE).sum())
    flooded = int((values > IDEAL_MAX_MOISTURE).sum())
    return PlantStatus(dry=dry, flooded=flooded, healthy=len(values) - dry - flooded)


def compute_metrics(garden, state):
    """Summarise the planted tiles of `garden` together with the running state."""
    values = garden.moisture[garden.plants]
    total = len(values)

    if total:
        status = plant_status(garden)
        avg = float(values.mean())
        low = float(values.min())
        high = float(values.max())
        percent_dry = 100.0 * status.dry / total
        percent_wet = 100.0 * status.flooded / total
    else:
        avg = low = high = 0.0
        percent_dry = percent_wet = 0.0

    if state.irrigation_on:
        ticks_since = 0
    else:
        ticks_since = state.tick - state.last_irrigation_tick

    if state.episode_length > 0:
        progress = min(state.tick / state.episode_length, 1.0)
    else:
        progress = 0.0

    return Metrics(
        avg_moisture=avg,
        min_moisture=low,
        max_moisture=high,
        percent_too_dry=percent_dry,
        percent_too_wet=percent_wet,
        irrigation_on=state.irrigation_on,
        ticks_since_last_irrigation=ticks_since,
        time_of_day=(state.tick % TICKS_PER_DAY) / TICKS_PER_DAY,
        episode_progress=progress,
        water_used_this_tick=state.water_used_this_tick,
        cumulative_water_used=state.cumulative_water_used,
        plant_count=total,
    )
