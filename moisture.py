import numpy as np
from collections import namedtuple


_SimulationConfigBase = namedtuple(
    "SimulationConfig",
    [
        "irrigation_rate",
        "base_evaporation_rate",
        "diffusion_rate",
        "rain_to_moisture",
        "max_moisture",
        "coverage_radius",
    ],
    defaults=[0.05, 0.01, 0.15, 0.1, 2.0, 1],
)


class SimulationConfig(_SimulationConfigBase):
    """
    Physical parameters of the moisture model.

    irrigation_rate: moisture added per tick to irrigated soil
    base_evaporation_rate: evaporation per tick before the climate factor
    diffusion_rate: fraction of a neighbour difference exchanged per tick (< 0.5)
    rain_to_moisture: moisture per tick at rain intensity 1
    max_moisture: upper clamp for soil moisture
    coverage_radius: Manhattan radius around hose tiles that gets irrigated
    """

    __slots__ = ()

    def validate(self):
        for name in ("irrigation_rate", "base_evaporation_rate", "rain_to_moisture"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if not 0 <= self.diffusion_rate < 0.5:
            raise ValueError(f"diffusion_rate must be in [0, 0.5), got {self.diffusion_rate}")
        if self.max_moisture <= 0:
            raise ValueError(f"max_moisture must be positive, got {self.max_moisture}")
        if self.coverage_radius < 0 or int(self.coverage_radius) != self.coverage_radius:
            raise ValueError(f"coverage_radius must be a non-negative integer, got {self.coverage_radius}")
        return self


def climate_factor(weather):
    # More sun and heat dry the soil faster, humid air slows it down
    return (
        1
        + 0.5 * weather.sun_intensity
        + 0.02 * (weather.temperature - 20)
        - 0.5 * weather.humidity
    )


def evaporation_rate(config, weather):
    return max(0.0, config.base_evaporation_rate * climate_factor(weather))


def diffuse(moisture, soil_mask, diffusion_rate):
    """
    One lateral diffusion pass between orthogonally adjacent soil tiles.

    Each unordered pair is visited once (right and down neighbours) and all
    exchanges are computed from the same input snapshot, so the total
    moisture over soil is conserved.
    """
    delta = np.zeros_like(moisture)

    horizontal = soil_mask[:, :-1] & soil_mask[:, 1:]
    flow = np.where(horizontal, diffusion_rate * (moisture[:, :-1] - moisture[:, 1:]), 0.0)
    delta[:, :-1] -= flow
    delta[:, 1:] += flow

    vertical = soil_mask[:-1, :] & soil_mask[1:, :]
    flow = np.where(vertical, diffusion_rate * (moisture[:-1, :] - moisture[1:, :]), 0.0)
    delta[:-1, :] -= flow
    delta[1:, :] += flow

    return moisture + delta


def step_garden_moisture(garden, config, weather, irrigation_on):
    """
    Advance soil moisture by one tick and return a new Garden.

    Phases, in order:
    1. sources: irrigation on covered soil, rain on all soil
    2. sink: climate-dependent evaporation on all soil
    3. lateral diffusion between soil neighbours
    4. clamp soil moisture to [0, max_moisture]

    Non-soil tiles keep their moisture. The input garden is never modified.
    """
    soil = garden.soil_mask
    moisture = garden.moisture.copy()

    # 1. Sources
    if irrigation_on:
        moisture[garden.irrigated_mask(config.coverage_radius)] += config.irrigation_rate
    if weather.rain_intensity > 0:
        moisture[soil] += config.rain_to_moisture * weather.rain_intensity

    # 2. Evaporation
    moisture[soil] -= evaporation_rate(config, weather)

    # 3. Diffusion
    moisture = diffuse(moisture, soil, config.diffusion_rate)

    # 4. Clamp soil, restore everything else
    moisture = np.where(soil, np.clip(moisture, 0.0, config.max_moisture), garden.moisture)

    return garden.with_moisture(moisture)
