import numpy as np
import pytest

from controllers import (
    AlwaysOffIrrigationController,
    AlwaysOnIrrigationController,
    ThresholdIrrigationController,
)
from garden import garden_from_ascii
from hose_planner import covered_plant_count, plan_hoses
from moisture import SimulationConfig
from simulation import (
    GardenOptions,
    GardenSimulation,
    ScoringWeights,
    SimulationState,
    compile_results,
    create_simulation,
)
from smart_controller import FuzzyClimateEvaluator, OutcomePredictor, SmartIrrigationController

SCENARIO = GardenOptions(width=20, height=20, pillar_density=0.1, plant_chance_near_path=0.6,
                         seed=12345, coverage_radius=2)


def _make_state(healthy=0, dry=0, flooded=0, water=0.0):
    state = SimulationState()
    state.healthy_plant_ticks = healthy
    state.dry_plant_ticks = dry
    state.flooded_plant_ticks = flooded
    state.cumulative_water_used = water
    return state


def _make_small_simulation(controller, episode_length=40):
    garden = garden_from_ascii(
        [
            "W====",
            ".p.p.",
            ".....",
            "p..#p",
        ],
        moisture=0.3,
        seed=3,
    )
    return GardenSimulation(plan_hoses(garden, coverage_radius=1), controller,
                            episode_length=episode_length)


def test_all_healthy_without_water_scores_100():
    results = compile_results(_make_state(healthy=500))
    assert results.final_score == 100


def test_all_dry_scores_below_half_dry():
    all_dry = compile_results(_make_state(dry=500))
    half = compile_results(_make_state(dry=250, healthy=250))
    assert all_dry.final_score < half.final_score
    assert 0 <= all_dry.final_score <= 100


def test_water_use_lowers_score():
    frugal = compile_results(_make_state(healthy=100, water=0.0))
    thirsty = compile_results(_make_state(healthy=100, water=100.0))
    assert thirsty.final_score < frugal.final_score


def test_custom_scoring_weights():
    weights = ScoringWeights(health=1.0, dryness=0.0, flooding=0.0, water_efficiency=0.0)
    results = compile_results(_make_state(healthy=50, dry=50), weights)
    assert results.final_score == 50


def test_step_advances_one_tick_and_stops_at_episode_end():
    sim = _make_small_simulation(AlwaysOnIrrigationController(), episode_length=3)
    sim.step()
    assert sim.state.tick == 1
    sim.step()
    sim.step()
    assert sim.finished
    sim.step()
    assert sim.state.tick == 3
    assert sim.results is not None
    assert sim.results.ticks == 3


def test_moisture_bounds_hold_every_tick():
    sim = _make_small_simulation(AlwaysOnIrrigationController(), episode_length=60)
    before_non_soil = sim.garden.moisture[~sim.garden.soil_mask].copy()
    while not sim.finished:
        sim.step()
        soil = sim.garden.moisture[sim.garden.soil_mask]
        assert soil.min() >= 0.0
        assert soil.max() <= sim.state.config.max_moisture
        assert np.array_equal(sim.garden.moisture[~sim.garden.soil_mask], before_non_soil)


def test_reset_restores_initial_state():
    sim = _make_small_simulation(AlwaysOnIrrigationController())
    first = sim.run()
    sim.reset()
    assert sim.state.tick == 0
    assert sim.garden is sim.initial_garden
    assert sim.run() == first


def test_runs_are_deterministic():
    def run():
        controller = SmartIrrigationController(FuzzyClimateEvaluator(), OutcomePredictor())
        return create_simulation(SCENARIO, controller, episode_length=200).run()

    assert run() == run()


def test_toggles_are_counted():
    sim = _make_small_simulation(ThresholdIrrigationController(), episode_length=200)
    results = sim.run()
    assert results.irrigation_toggle_count >= 0
    assert results.irrigation_on_ticks <= results.ticks
    assert results.total_plant_ticks == 200 * 4


def test_always_on_scenario():
    results = create_simulation(SCENARIO, AlwaysOnIrrigationController(), episode_length=1000).run()
    assert results.irrigation_on_ticks == 1000
    assert results.irrigation_toggle_count == 0
    assert results.ticks == 1000
    assert 0 <= results.final_score <= 100


def test_always_off_scenario_uses_no_water():
    results = create_simulation(SCENARIO, AlwaysOffIrrigationController(), episode_length=1000).run()
    assert results.total_water_used == 0
    assert results.irrigation_on_ticks == 0
    # Irrigation starts on, so switching it off counts once
    assert results.irrigation_toggle_count == 1


def test_garden_without_plants_scores_zero():
    garden = plan_hoses(garden_from_ascii(["W==..", "....."], moisture=0.5))
    results = GardenSimulation(garden, AlwaysOnIrrigationController(), episode_length=30).run()
    assert results.total_plant_ticks == 0
    assert results.final_score == 0


def test_uncoverable_garden_still_produces_results():
    garden = plan_hoses(
        garden_from_ascii(
            [
                "W=#p",
                "==##",
            ]
        )
    )
    assert garden.hoses == ()
    dry_weather = SimulationConfig(rain_to_moisture=0.0)
    results = GardenSimulation(garden, AlwaysOnIrrigationController(), config=dry_weather,
                               episode_length=30).run()
    assert results.total_water_used == 0
    assert results.dry_plant_ticks == 30
    assert results.final_score == 0


def test_options_mapping_is_accepted():
    sim = create_simulation(dict(SCENARIO._asdict()), AlwaysOffIrrigationController(), episode_length=5)
    assert sim.state.config.coverage_radius == 2
    assert sim.run().ticks == 5


def test_invalid_config_is_rejected():
    with pytest.raises(ValueError):
        SimulationState(SimulationConfig(diffusion_rate=0.7))


def test_plant_next_to_water_source_is_irrigated():
    garden = plan_hoses(garden_from_ascii(["Wp...", "....."]), coverage_radius=1)
    assert garden.hoses == ()
    assert covered_plant_count(garden, 1) == 1
    assert garden.irrigated_mask(1).sum() == 2

    no_losses = SimulationConfig(base_evaporation_rate=0.0, rain_to_moisture=0.0, coverage_radius=1)
    results = GardenSimulation(garden, AlwaysOnIrrigationController(), config=no_losses,
                               episode_length=30).run()
    assert results.total_water_used == pytest.approx(30 * 2 * no_losses.irrigation_rate)
    assert results.healthy_plant_ticks > 0


def test_every_covered_plant_gets_watered():
    sim = create_simulation(SCENARIO, AlwaysOnIrrigationController(), episode_length=1)
    garden = sim.garden
    radius = SCENARIO.coverage_radius
    irrigated = garden.irrigated_mask(radius)
    watered = sum(1 for plant in garden.find_plant_tiles() if irrigated[plant.y, plant.x])
    assert watered == covered_plant_count(garden, radius)
