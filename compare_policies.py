import os
import time

import numpy as np

from consts import EPISODE_LENGTH
from controllers import (
    AlwaysOffIrrigationController,
    AlwaysOnIrrigationController,
    ManualIrrigationController,
    ThresholdIrrigationController,
)
from simulation import GardenOptions, create_simulation
from smart_controller import (
    DEFAULT_CONTROLLER_PARAMS,
    FuzzyClimateEvaluator,
    OutcomePredictor,
    SmartIrrigationController,
)
from utils import list_trainings, load_params, plot_comparison

CONTROLLERS = {
    "always_on": AlwaysOnIrrigationController,
    "always_off": AlwaysOffIrrigationController,
    "threshold": ThresholdIrrigationController,
    "manual": ManualIrrigationController,
}


def make_controller(key, params=None, predictor=None):
    """Instantiate a controller by key; 'smart' uses `params` or the defaults."""
    if key == "smart":
        return SmartIrrigationController(
            FuzzyClimateEvaluator(),
            predictor if predictor is not None else OutcomePredictor(),
            params if params is not None else DEFAULT_CONTROLLER_PARAMS,
        )
    if key not in CONTROLLERS:
        raise ValueError(f"unknown controller {key!r}, expected one of {sorted(CONTROLLERS) + ['smart']}")
    return CONTROLLERS[key]()


def run_simulations(options, count, controller_key, base_seed=42, params=None,
                    episode_length=EPISODE_LENGTH, verbose=True):
    """
    Run `count` episodes on gardens seeded base_seed, base_seed + 1, ...

    Every episode gets its own controller and simulation. Returns the list of Results.
    """
    if not isinstance(options, GardenOptions):
        options = GardenOptions(**options)

    all_results = []
    for index in range(count):
        sim = create_simulation(
            options._replace(seed=base_seed + index),
            controller=make_controller(controller_key, params),
            episode_length=episode_length,
        )
        results = sim.run()
        all_results.append(results)

        if verbose:
            print(
                f"[Sim {index + 1:02d}] Score: {results.final_score:3d}"
                f" | Water: {results.total_water_used:7.2f} units"
                f" | Healthy: {results.healthy_plant_ticks:5d}"
                f" | Dry: {results.dry_plant_ticks:5d}"
                f" | Flooded: {results.flooded_plant_ticks:5d}"
            )

    if verbose and all_results:
        scores = [r.final_score for r in all_results]
        print(f"\nAverage Score: {np.mean(scores):.2f} (range {min(scores)} -> {max(scores)})")
        print(f"Average Water Used: {np.mean([r.total_water_used for r in all_results]):.2f} units")
        print(f"Average Healthy Ticks: {np.mean([r.healthy_plant_ticks for r in all_results]):.0f}")

    return all_results


def compare_policies(options=GardenOptions(), controller_keys=("always_on", "always_off", "threshold", "smart"),
                     count=5, base_seed=42, params=None, episode_length=EPISODE_LENGTH, plot=True,
                     verbose=True):
    """
    Run every controller on the same seeds and collect summary statistics.

    Returns a dict keyed by controller with avg/std score, healthy percentage,
    average water usage and run time.
    """
    summary = {}
    for key in controller_keys:
        if verbose:
            print(f"\n=== Evaluating {key} ===\n")
        start_time = time.time()
        results = run_simulations(options, count, key, base_seed, params, episode_length, verbose)
        elapsed = time.time() - start_time

        scores = [r.final_score for r in results]
        plant_ticks = sum(r.total_plant_ticks for r in results)
        healthy = sum(r.healthy_plant_ticks for r in results)
        summary[key] = {
            "avg_score": float(np.mean(scores)),
            "std_score": float(np.std(scores)),
            "healthy_pct": healthy / plant_ticks * 100 if plant_ticks > 0 else 0.0,
            "avg_water_used": float(np.mean([r.total_water_used for r in results])),
            "seconds": elapsed,
        }

    if plot:
        plot_comparison(
            list(summary),
            [s["avg_score"] for s in summary.values()],
            [s["std_score"] for s in summary.values()],
            [s["healthy_pct"] for s in summary.values()],
            [s["avg_water_used"] for s in summary.values()],
        )

    return summary


def main():
    os.makedirs("results/comparison", exist_ok=True)

    options = GardenOptions(width=20, height=20, pillar_density=0.1, plant_chance_near_path=0.6,
                            seed=12345, coverage_radius=2)

    # Use the most recent saved training for the smart controller, if any
    params = None
    trainings = list_trainings()
    if trainings:
        params, document = load_params(trainings[0]["id"])
        print(f"Using trained parameters: {document['name']} (fitness {document['fitness']:.2f})")

    summary = compare_policies(options, count=5, params=params, episode_length=500)

    print("\nComparison:")
    for key, stats in summary.items():
        print(
            f"{key}: score {stats['avg_score']:.2f} +/- {stats['std_score']:.2f}, "
            f"healthy {stats['healthy_pct']:.1f}%, water {stats['avg_water_used']:.2f}, "
            f"{stats['seconds']:.2f} seconds"
        )


if __name__ == "__main__":
    main()
