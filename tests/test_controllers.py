from controllers import (
    AlwaysOffIrrigationController,
    AlwaysOnIrrigationController,
    ManualIrrigationController,
    ThresholdIrrigationController,
)
from metrics import Metrics
from simulation import SimulationState


def _make_metrics(percent_too_dry=0.0, percent_too_wet=0.0, avg_moisture=0.5):
    return Metrics(
        avg_moisture=avg_moisture,
        min_moisture=avg_moisture,
        max_moisture=avg_moisture,
        percent_too_dry=percent_too_dry,
        percent_too_wet=percent_too_wet,
        irrigation_on=True,
        ticks_since_last_irrigation=0,
        time_of_day=0.0,
        episode_progress=0.0,
        water_used_this_tick=0.0,
        cumulative_water_used=0.0,
        plant_count=10,
    )


def test_constant_controllers():
    state = SimulationState()
    assert AlwaysOnIrrigationController().decide(_make_metrics(), state) is True
    assert AlwaysOffIrrigationController().decide(_make_metrics(), state) is False


def test_threshold_controller_uses_percentages():
    controller = ThresholdIrrigationController()
    state = SimulationState()
    assert controller.decide(_make_metrics(percent_too_dry=25.0), state)
    assert not controller.decide(_make_metrics(percent_too_wet=35.0), state)
    # 15% dry is below the 20% threshold and the soil is moist on average
    assert not controller.decide(_make_metrics(percent_too_dry=15.0), state)
    assert controller.decide(_make_metrics(avg_moisture=0.05), state)


def test_manual_controller_follows_setter():
    controller = ManualIrrigationController()
    state = SimulationState()
    assert not controller.decide(_make_metrics(), state)
    controller.set_irrigation(True)
    assert controller.decide(_make_metrics(), state)
    controller.set_irrigation(0)
    assert controller.irrigation_enabled is False
