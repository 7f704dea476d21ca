from consts import IDEAL_MIN_MOISTURE


class IrrigationController:
    """
    Decision contract shared by every irrigation policy.

    decide(metrics, state) is called once per tick and returns True to keep
    irrigation on for that tick. Controllers must not mutate either argument.
    """

    def decide(self, metrics, state):
        raise NotImplementedError


class AlwaysOnIrrigationController(IrrigationController):
    def decide(self, metrics, state):
        return True


class AlwaysOffIrrigationController(IrrigationController):
    def decide(self, metrics, state):
        return False


class ThresholdIrrigationController(IrrigationController):
    """
    Irrigate while too many plants are dry, stop while too many are flooded,
    otherwise irrigate only if the average moisture is below `moisture_low`.

    Thresholds use the same 0-100 percentage scale as Metrics.
    """

    def __init__(self, dry_percent_threshold=20.0, wet_percent_threshold=30.0,
                 moisture_low=IDEAL_MIN_MOISTURE):
        self.dry_percent_threshold = dry_percent_threshold
        self.wet_percent_threshold = wet_percent_threshold
        self.moisture_low = moisture_low

    def decide(self, metrics, state):
        if metrics.percent_too_dry > self.dry_percent_threshold:
            return True
        if metrics.percent_too_wet > self.wet_percent_threshold:
            return False
        return metrics.avg_moisture < self.moisture_low


class ManualIrrigationController(IrrigationController):
    """Irrigation follows whatever was last set from outside."""

    def __init__(self, enabled=False):
        self.irrigation_enabled = enabled

    def set_irrigation(self, enabled):
        self.irrigation_enabled = bool(enabled)

    def decide(self, metrics, state):
        return self.irrigation_enabled
