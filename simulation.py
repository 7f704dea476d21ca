import functools
from collections import namedtuple

from consts import EPISODE_LENGTH, FORECAST_TICK_WINDOW
from hose_planner import plan_hoses
from metrics import compute_metrics, plant_status
from moisture import SimulationConfig, step_garden_moisture
from terrain import generate_garden
from weather import INITIAL_WEATHER, evolve_weather, forecast_rain

GardenOptions = namedtuple(
    "GardenOptions",
    ["width", "height", "pillar_density", "plant_chance_near_path", "seed", "coverage_radius"],
    defaults=[30, 20, 0.04, 0.25, 42, 1],
)

ScoringWeights = namedtuple(
    "ScoringWeights",
    ["health", "dryness", "flooding", "water_efficiency", "reference_usage_rate"],
    defaults=[1.0, 0.5, 0.3, 0.2, 0.25],
)

Results = namedtuple(
    "Results",
    [
        "total_water_used",
        "dry_plant_ticks",
        "flooded_plant_ticks",
        "healthy_plant_ticks",
        "total_plant_ticks",
        "peak_dry_plants",
        "peak_flooded_plants",
        "ticks",
        "irrigation_toggle_count",
        "irrigation_on_ticks",
        "final_score",
    ],
)


class SimulationState:
    """
    Mutable per-episode bookkeeping, owned by exactly one GardenSimulation.
    """

    def __init__(self, config=None, episode_length=EPISODE_LENGTH, weather=INITIAL_WEATHER,
                 irrigation_on=True):
        self.config = (config or SimulationConfig()).validate()
        self.episode_length = episode_length
        self.tick = 0
        self.is_running = False

        self.irrigation_on = irrigation_on
        self.last_irrigation_tick = 0
        self.last_toggle_tick = None
        self.irrigation_toggle_count = 0
        self.irrigation_on_ticks = 0

        self.weather = weather
        self.forecast = (0.0,) * FORECAST_TICK_WINDOW

        self.water_used_this_tick = 0.0
        self.cumulative_water_used = 0.0

        self.dry_plant_ticks = 0
        self.flooded_plant_ticks = 0
        self.healthy_plant_ticks = 0
        self.peak_dry_plants = 0
        self.peak_flooded_plants = 0

    @property
    def total_plant_ticks(self):
        return self.dry_plant_ticks + self.flooded_plant_ticks + self.healthy_plant_ticks


def compile_results(state, weights=ScoringWeights()):
    """
    Summarise an episode so far into a Results record.

    The score rewards the healthy plant-tick ratio and water efficiency and
    penalises dry (more) and flooded (less) plant-ticks. It is normalised by
    the best achievable raw score, clamped to [0, 100] and rounded. An
    episode without any plant-ticks scores 0.
    """
    total = state.total_plant_ticks

    if total > 0:
        health_ratio = state.healthy_plant_ticks / total
        dry_ratio = state.dry_plant_ticks / total
        flood_ratio = state.flooded_plant_ticks / total
        water_per_plant_tick = state.cumulative_water_used / total
        efficiency = 1 - min(1.0, water_per_plant_tick / weights.reference_usage_rate)

        raw = (
            weights.health * health_ratio
            - weights.dryness * dry_ratio
            - weights.flooding * flood_ratio
            + weights.water_efficiency * efficiency
        )
        best = weights.health + weights.water_efficiency
        score = int(round(max(0.0, min(100.0, 100.0 * raw / best))))
    else:
        score = 0

    return Results(
        total_water_used=state.cumulative_water_used,
        dry_plant_ticks=state.dry_plant_ticks,
        flooded_plant_ticks=state.flooded_plant_ticks,
        healthy_plant_ticks=state.healthy_plant_ticks,
        total_plant_ticks=total,
        peak_dry_plants=state.peak_dry_plants,
        peak_flooded_plants=state.peak_flooded_plants,
        ticks=state.tick,
        irrigation_toggle_count=state.irrigation_toggle_count,
        irrigation_on_ticks=state.irrigation_on_ticks,
        final_score=score,
    )


@functools.lru_cache(maxsize=64)
def build_garden(options):
    """Generate terrain and plan hoses for `options`. Gardens are immutable, so this is cached."""
    garden = generate_garden(
        width=options.width,
        height=options.height,
        pillar_density=options.pillar_density,
        plant_chance_near_path=options.plant_chance_near_path,
        seed=options.seed,
    )
    return plan_hoses(garden, coverage_radius=options.coverage_radius)


class GardenSimulation:
    """
    Discrete-time irrigation episode over one garden.

    Each call to step() advances exactly one tick:
    metrics -> controller decision -> weather -> moisture -> water usage ->
    plant accumulators -> forecast -> tick += 1.
    Once the episode length is reached (and override_episode_end is not set)
    step() stores the final results and does nothing further until reset().
    """

    def __init__(self, garden, controller=None, config=None, episode_length=EPISODE_LENGTH,
                 seed=None, scoring=ScoringWeights()):
        self.initial_garden = garden
        self.controller = controller
        self.initial_config = config
        self.episode_length = episode_length
        self.seed = seed if seed is not None else (garden.seed if garden.seed is not None else 42)
        self.scoring = scoring
        self.override_episode_end = False
        self.reset()

    def reset(self):
        self.garden = self.initial_garden
        self.state = SimulationState(self.initial_config, self.episode_length)
        self.metrics = compute_metrics(self.garden, self.state)
        self.results = None

    @property
    def finished(self):
        return self.state.tick >= self.state.episode_length and not self.override_episode_end

    def step(self):
        state = self.state
        if self.finished:
            state.is_running = False
            if self.results is None:
                self.results = self.compile_results()
            return
        state.is_running = True

        self.metrics = compute_metrics(self.garden, state)

        if self.controller is not None:
            irrigate = bool(self.controller.decide(self.metrics, state))
            if irrigate != state.irrigation_on:
                state.irrigation_toggle_count += 1
                state.last_toggle_tick = state.tick
                if irrigate:
                    state.last_irrigation_tick = state.tick
                state.irrigation_on = irrigate
        if state.irrigation_on:
            state.irrigation_on_ticks += 1

        state.weather = evolve_weather(self.seed, state.weather, state.tick)

        self.garden = step_garden_moisture(self.garden, state.config, state.weather, state.irrigation_on)

        if state.irrigation_on:
            covered = int(self.garden.irrigated_mask(state.config.coverage_radius).sum())
            state.water_used_this_tick = covered * state.config.irrigation_rate
        else:
            state.water_used_this_tick = 0.0
        state.cumulative_water_used += state.water_used_this_tick

        status = plant_status(self.garden)
        state.dry_plant_ticks += status.dry
        state.flooded_plant_ticks += status.flooded
        state.healthy_plant_ticks += status.healthy
        state.peak_dry_plants = max(state.peak_dry_plants, status.dry)
        state.peak_flooded_plants = max(state.peak_flooded_plants, status.flooded)

        state.forecast = forecast_rain(self.seed, state.weather, state.tick + 1)

        state.tick += 1

    def run(self):
        """Step until the episode length is reached and return its Results."""
        while self.state.tick < self.state.episode_length:
            self.step()
        self.results = self.compile_results()
        return self.results

    def compile_results(self):
        return compile_results(self.state, self.scoring)


def create_simulation(options, controller=None, config=None, episode_length=EPISODE_LENGTH,
                      scoring=ScoringWeights()):
    """Build a planned garden from GardenOptions and wrap it in a GardenSimulation."""
    if not isinstance(options, GardenOptions):
        options = GardenOptions(**options)
    config = (config or SimulationConfig())._replace(coverage_radius=options.coverage_radius)
    return GardenSimulation(
        build_garden(options),
        controller=controller,
        config=config,
        episode_length=episode_length,
        seed=options.seed,
        scoring=scoring,
    )
