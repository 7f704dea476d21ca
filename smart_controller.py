from collections import namedtuple
from collections.abc import Mapping

from controllers import IrrigationController
from metrics import to_fraction

# Genome evolved by the genetic algorithm. Plain numbers only so it can be
# stored as JSON via _asdict().
ControllerParams = namedtuple(
    "ControllerParams",
    [
        "dryness_weight",            # cost per unit of predicted dryness
        "flood_weight",              # cost per unit of scaled flood risk
        "water_weight",              # cost of turning irrigation on
        "prediction_horizon_ticks",  # lookahead of the outcome predictor
        "fuzzy_dryness_scale",
        "fuzzy_flood_scale",
        "min_ticks_between_toggles",
        "max_duty_cycle",            # cap on the fraction of ticks spent irrigating
    ],
)

DEFAULT_CONTROLLER_PARAMS = ControllerParams(
    dryness_weight=1.5,
    flood_weight=1.0,
    water_weight=0.3,
    prediction_horizon_ticks=10,
    fuzzy_dryness_scale=0.5,
    fuzzy_flood_scale=0.4,
    min_ticks_between_toggles=3,
    max_duty_cycle=0.6,
)

FLOOD_FORCE_OFF_RISK = 0.7
FLOOD_HYSTERESIS_BREAK_RISK = 0.6
EXTREME_DRYNESS = 0.9

FuzzyInputs = namedtuple(
    "FuzzyInputs",
    ["temperature", "humidity", "sun", "rain_now", "rain_soon", "dry_fraction", "wet_fraction"],
)
FuzzyRisks = namedtuple("FuzzyRisks", ["dryness_risk", "flood_risk"])
DecisionTrace = namedtuple(
    "DecisionTrace",
    ["risks", "predicted_dry_off", "predicted_dry_on", "cost_off", "cost_on", "irrigate"],
)


def clamp01(x):
    return max(0.0, min(1.0, x))


def tri(x, a, b, c):
    """Triangular membership: 0 outside (a, c), 1 at the peak b."""
    if x <= a or x >= c:
        return 0.0
    if x == b:
        return 1.0
    if x < b:
        return (x - a) / (b - a)
    return (c - x) / (c - b)


class FuzzyClimateEvaluator:
    """
    Turns weather, soil metrics and the rain forecast into two risk scores.

    Dryness rules:
    - hot AND sunny AND dry air
    - many dry plants AND no heavy rain now or soon
    - medium temperature AND medium sun
    Flood rules:
    - many wet plants OR heavy rain now
    - garden already somewhat wet AND heavy rain soon
    - cool AND low sun AND humid air (little evaporation)

    Each risk is the strongest of its rules.
    """

    def fuzzify_inputs(self, metrics, weather, forecast):
        """Normalise every input to [0, 1]; plant percentages are divided by 100."""
        rain_soon = max((clamp01(r) for r in forecast), default=0.0)
        return FuzzyInputs(
            temperature=clamp01(weather.temperature / 40.0),
            humidity=clamp01(weather.humidity),
            sun=clamp01(weather.sun_intensity),
            rain_now=clamp01(weather.rain_intensity),
            rain_soon=rain_soon,
            dry_fraction=to_fraction(metrics.percent_too_dry),
            wet_fraction=to_fraction(metrics.percent_too_wet),
        )

    def evaluate(self, metrics, weather, forecast):
        inputs = self.fuzzify_inputs(metrics, weather, forecast)

        temp_high = tri(inputs.temperature, 0.5, 0.8, 1.0)
        temp_med = tri(inputs.temperature, 0.3, 0.5, 0.7)
        temp_low = tri(inputs.temperature, 0.0, 0.2, 0.4)

        hum_low = tri(1 - inputs.humidity, 0.3, 0.7, 1.0)
        hum_high = tri(inputs.humidity, 0.5, 0.8, 1.0)

        sun_high = tri(inputs.sun, 0.5, 0.8, 1.0)
        sun_med = tri(inputs.sun, 0.3, 0.5, 0.7)
        sun_low = tri(inputs.sun, 0.0, 0.2, 0.4)

        rain_now_high = tri(inputs.rain_now, 0.3, 0.7, 1.0)
        rain_soon_high = tri(inputs.rain_soon, 0.3, 0.7, 1.0)

        no_rain_soon = clamp01(1 - max(rain_now_high, rain_soon_high))
        dryness_risk = max(
            min(temp_high, sun_high, hum_low),
            min(inputs.dry_fraction, no_rain_soon),
            min(temp_med, sun_med),
        )

        already_wet = tri(inputs.wet_fraction, 0.1, 0.3, 0.8)
        flood_risk = max(
            max(inputs.wet_fraction, rain_now_high),
            min(already_wet, rain_soon_high),
            min(temp_low, sun_low, hum_high),
        )

        return FuzzyRisks(dryness_risk=clamp01(dryness_risk), flood_risk=clamp01(flood_risk))


class OutcomePredictor:
    """
    Closed-form estimate of the too-dry fraction a few ticks ahead.

    Starting from the current dry fraction: irrigation damps it, otherwise
    evaporation (temperature x sun x dry air) pushes it up; current rain and
    current wetness pull it down. The evaporation push grows with the horizon
    relative to `reference_horizon`.
    """

    def __init__(self, irrigation_damping=0.4, evaporation_gain=0.15, rain_relief=0.25,
                 wetness_relief=0.1, reference_horizon=10):
        self.irrigation_damping = irrigation_damping
        self.evaporation_gain = evaporation_gain
        self.rain_relief = rain_relief
        self.wetness_relief = wetness_relief
        self.reference_horizon = reference_horizon

    def current_dry_fraction(self, metrics):
        return to_fraction(metrics.percent_too_dry)

    def predict_future_dryness(self, metrics, weather, state, irrigation_on,
                               horizon=10):
        future_dry = self.current_dry_fraction(metrics)

        if irrigation_on:
            future_dry *= self.irrigation_damping
        else:
            temperature = clamp01(weather.temperature / 40.0)
            evaporation = temperature * weather.sun_intensity * (1 - weather.humidity)
            future_dry += evaporation * self.evaporation_gain * horizon / self.reference_horizon

        future_dry -= weather.rain_intensity * self.rain_relief
        future_dry -= to_fraction(metrics.percent_too_wet) * self.wetness_relief
        return clamp01(future_dry)


def duty_cycle(state):
    if state.irrigation_on_ticks <= 0:
        return 0.0
    return state.irrigation_on_ticks / max(1, state.tick)


def ticks_since_toggle(state):
    if state.last_toggle_tick is None:
        return None
    return state.tick - state.last_toggle_tick


class SmartIrrigationController(IrrigationController):
    """
    Composite policy: fuzzy risk evaluation, two-branch outcome prediction
    and a weighted cost comparison, followed by safety overrides.

    Per tick:
    1. evaluate dryness and flood risk
    2. predict future dryness with irrigation off and on
    3. irrigate iff the "on" cost is lower
    4. force off on high flood risk, or when the duty-cycle cap is exceeded
       and dryness is not extreme
    5. within `min_ticks_between_toggles` of the last switch, hold the current
       state unless flood risk (while on) or dryness (while off) is extreme

    The controller keeps no state of its own; toggle timing and duty cycle
    are read from the SimulationState it is given.
    """

    def __init__(self, evaluator, predictor, params=DEFAULT_CONTROLLER_PARAMS):
        if isinstance(params, Mapping):
            params = ControllerParams(**params)
        self.evaluator = evaluator
        self.predictor = predictor
        self.params = params

    def explain(self, metrics, state):
        p = self.params
        weather = state.weather

        risks = self.evaluator.evaluate(metrics, weather, state.forecast)

        horizon = p.prediction_horizon_ticks
        dry_off = self.predictor.predict_future_dryness(metrics, weather, state, False, horizon)
        dry_on = self.predictor.predict_future_dryness(metrics, weather, state, True, horizon)

        flood_cost = p.flood_weight * (risks.flood_risk * p.fuzzy_flood_scale)
        cost_off = p.dryness_weight * dry_off + flood_cost
        cost_on = p.dryness_weight * dry_on + flood_cost + p.water_weight

        irrigate = cost_on < cost_off

        if risks.flood_risk > FLOOD_FORCE_OFF_RISK:
            irrigate = False

        if (duty_cycle(state) > p.max_duty_cycle
                and risks.dryness_risk < EXTREME_DRYNESS
                and dry_off < EXTREME_DRYNESS):
            irrigate = False

        elapsed = ticks_since_toggle(state)
        if elapsed is not None and elapsed < p.min_ticks_between_toggles:
            if state.irrigation_on:
                irrigate = not risks.flood_risk > FLOOD_HYSTERESIS_BREAK_RISK
            else:
                irrigate = risks.dryness_risk > EXTREME_DRYNESS or dry_off > EXTREME_DRYNESS

        return DecisionTrace(risks, dry_off, dry_on, cost_off, cost_on, irrigate)

    def decide(self, metrics, state):
        return self.explain(metrics, state).irrigate
