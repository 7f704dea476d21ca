import numpy as np
import pytest

from environment import GardenIrrigationEnv
from simulation import GardenOptions
from smart_controller import FuzzyClimateEvaluator, OutcomePredictor, SmartIrrigationController
from utils import evaluate_policy

SMALL_GARDEN = GardenOptions(width=15, height=12, seed=8)


def _make_env(episode_length=10):
    return GardenIrrigationEnv(SMALL_GARDEN, episode_length=episode_length)


def test_reset_returns_valid_observation():
    env = _make_env()
    obs, info = env.reset(seed=8)
    assert obs.shape == env.observation_space.shape
    assert env.observation_space.contains(obs)
    assert info == {}
    assert env.simulation.state.tick == 0


def test_episode_terminates_after_episode_length():
    env = _make_env(episode_length=5)
    env.reset(seed=8)
    terminated = False
    steps = 0
    while not terminated:
        obs, reward, terminated, truncated, info = env.step(steps % 2)
        assert env.observation_space.contains(obs)
        assert not truncated
        assert set(info["plant_status"]) == {"dry", "flooded", "healthy"}
        steps += 1
    assert steps == 5
    assert env.action_history == [0, 1, 0, 1, 0]
    assert len(env.moisture_history) == 5


def test_off_action_uses_no_water():
    env = _make_env()
    env.reset(seed=8)
    _, _, _, _, info = env.step(0)
    assert info["water_used"] == 0.0
    assert not env.simulation.state.irrigation_on


def test_reset_with_same_seed_replays_episode():
    env = _make_env()
    rewards = []
    for _ in range(2):
        env.reset(seed=8)
        rewards.append([env.step(1)[1] for _ in range(5)])
    assert rewards[0] == rewards[1]


def test_controller_policy_drives_env():
    env = _make_env(episode_length=8)
    controller = SmartIrrigationController(FuzzyClimateEvaluator(), OutcomePredictor())
    avg_reward, success_rate, avg_water = evaluate_policy(env, env.controller_policy(controller),
                                                          episodes=2, seed=8)
    assert np.isfinite(avg_reward)
    assert 0.0 <= success_rate <= 100.0
    assert avg_water >= 0.0


def test_plot_episode_returns_figure():
    import matplotlib.pyplot as plt

    env = _make_env(episode_length=4)
    env.reset(seed=8)
    for _ in range(4):
        env.step(1)
    assert len(env.status_history) == 4
    assert sum(env.water_history) == pytest.approx(env.simulation.state.cumulative_water_used)
    fig = env.plot_episode(1)
    # Health, moisture and irrigation panels plus the water axis twinned on the last one
    assert len(fig.axes) == 4
    assert fig.axes[0].get_title() == "Episode 1 - Plant Health"
    plt.close(fig)


def test_rgb_render_matches_garden_shape():
    env = GardenIrrigationEnv(SMALL_GARDEN, episode_length=3, render_mode="rgb_array")
    env.reset(seed=8)
    env.step(1)
    frame = env.render()
    garden = env.simulation.garden
    assert frame.shape == (garden.height, garden.width, 3)
    assert frame.dtype == np.uint8
    env.close()
    assert env.render() is None
