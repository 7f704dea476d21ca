import math
from collections import namedtuple
from collections.abc import Mapping
from concurrent.futures import ProcessPoolExecutor

import numpy as np

from consts import EPISODE_LENGTH
from simulation import GardenOptions, create_simulation
from smart_controller import (
    ControllerParams,
    FuzzyClimateEvaluator,
    OutcomePredictor,
    SmartIrrigationController,
)

UNEVALUATED = float("-inf")

GATrainerConfig = namedtuple(
    "GATrainerConfig",
    ["population_size", "generations", "elitism_rate", "mutation_std_dev", "mutation_rate",
     "seed", "workers"],
    defaults=[20, 15, 0.3, 0.2, 0.6, None, 1],
)

TrainingProgress = namedtuple(
    "TrainingProgress",
    ["generation", "total_generations", "best_fitness", "avg_fitness", "fitness_history"],
)

TrainingResults = namedtuple(
    "TrainingResults", ["best_chromosome", "fitness_history", "final_population"]
)

# Substituted for missing or NaN genes
PARAM_DEFAULTS = ControllerParams(
    dryness_weight=1.0,
    flood_weight=1.0,
    water_weight=0.3,
    prediction_horizon_ticks=10,
    fuzzy_dryness_scale=0.5,
    fuzzy_flood_scale=0.4,
    min_ticks_between_toggles=3,
    max_duty_cycle=0.6,
)

PARAM_BOUNDS = ControllerParams(
    dryness_weight=(0.0, math.inf),
    flood_weight=(0.0, math.inf),
    water_weight=(0.0, math.inf),
    prediction_horizon_ticks=(1, 100),
    fuzzy_dryness_scale=(0.0, 1.0),
    fuzzy_flood_scale=(0.0, 1.0),
    min_ticks_between_toggles=(0, math.inf),
    max_duty_cycle=(0.1, 1.0),
)

# Initial population is drawn uniformly from these finite ranges, each inside
# PARAM_BOUNDS. Integer genes take the floor, so their upper end is exclusive.
PARAM_SAMPLE_RANGES = ControllerParams(
    dryness_weight=(0.0, 3.0),
    flood_weight=(0.0, 2.0),
    water_weight=(0.0, 1.0),
    prediction_horizon_ticks=(5, 35),
    fuzzy_dryness_scale=(0.0, 1.0),
    fuzzy_flood_scale=(0.0, 1.0),
    min_ticks_between_toggles=(1, 11),
    max_duty_cycle=(0.3, 0.7),
)

INTEGER_GENES = ("prediction_horizon_ticks", "min_ticks_between_toggles")


def clamp_params(params):
    """Force every gene into its valid range; integer genes are rounded."""
    if not isinstance(params, Mapping):
        params = params._asdict()

    values = {}
    for name in ControllerParams._fields:
        value = params.get(name)
        if value is None or (isinstance(value, float) and math.isnan(value)):
            value = getattr(PARAM_DEFAULTS, name)
        low, high = getattr(PARAM_BOUNDS, name)
        if name in INTEGER_GENES:
            value = int(round(value))
            values[name] = int(max(low, min(high, value)))
        else:
            values[name] = float(max(low, min(high, value)))
    return ControllerParams(**values)


class EvaluationError(RuntimeError):
    """An episode run failed while scoring one individual."""

    def __init__(self, params, cause):
        super().__init__(params, cause)
        self.params = params
        self.cause = cause

    def __str__(self):
        return f"fitness evaluation failed for {self.params}: {self.cause!r}"


class Chromosome:
    def __init__(self, params, fitness=UNEVALUATED):
        self.params = params
        self.fitness = fitness

    @property
    def evaluated(self):
        return self.fitness != UNEVALUATED

    def __repr__(self):
        return f"Chromosome(fitness={self.fitness}, params={self.params})"


class EvaluationConfig:
    """
    How each individual is scored.

    garden_options: GardenOptions (or a dict of its fields) used for every
        episode, with the seed advanced by the episode index; or a callable
        taking the episode index and returning GardenOptions. Callables must
        be picklable when evaluating with several workers.
    episodes_per_individual: episodes averaged into one fitness value
    episode_length: ticks per episode
    sim_config: optional SimulationConfig (coverage radius comes from the options)
    predictor: outcome predictor shared by every controller; defaults to OutcomePredictor
    """

    def __init__(self, garden_options=GardenOptions(), episodes_per_individual=1,
                 episode_length=EPISODE_LENGTH, sim_config=None, predictor=None):
        if episodes_per_individual < 1:
            raise ValueError("episodes_per_individual must be at least 1")
        self.garden_options = garden_options
        self.episodes_per_individual = episodes_per_individual
        self.episode_length = episode_length
        self.sim_config = sim_config
        self.predictor = predictor

    def options_for_episode(self, episode):
        if callable(self.garden_options):
            return self.garden_options(episode)
        options = self.garden_options
        if isinstance(options, Mapping):
            options = GardenOptions(**options)
        return options._replace(seed=options.seed + episode)


def evaluate_fitness(params, eval_config):
    """Mean final score of a smart controller with `params` over the configured episodes."""
    predictor = eval_config.predictor if eval_config.predictor is not None else OutcomePredictor()
    controller = SmartIrrigationController(FuzzyClimateEvaluator(), predictor, params)

    scores = []
    for episode in range(eval_config.episodes_per_individual):
        sim = create_simulation(
            eval_config.options_for_episode(episode),
            controller=controller,
            config=eval_config.sim_config,
            episode_length=eval_config.episode_length,
        )
        scores.append(sim.run().final_score)
    return float(np.mean(scores))


def _evaluate_individual(job):
    params, eval_config = job
    try:
        return evaluate_fitness(params, eval_config)
    except Exception as exc:
        raise EvaluationError(params, exc) from exc


class GeneticAlgorithmTrainer:
    """
    Evolves ControllerParams with a generational genetic algorithm.

    1. Sample the initial population uniformly inside each gene's range
    2. Score every unevaluated individual by running episodes
    3. Keep the top ceil(population_size * elitism_rate) unchanged
    4. Refill with children: blend crossover of two random elites, then
       Gaussian mutation, then clamping
    5. Repeat for the configured number of generations

    All randomness comes from one numpy Generator seeded by config.seed.
    """

    def __init__(self, config=GATrainerConfig()):
        if config.population_size < 1:
            raise ValueError("population_size must be at least 1")
        if config.generations < 1:
            raise ValueError("generations must be at least 1")
        if not 0 < config.elitism_rate <= 1:
            raise ValueError("elitism_rate must be in (0, 1]")
        self.config = config
        self.rng = np.random.default_rng(config.seed)

        self.population = []
        self.best_chromosome = None
        self.fitness_history = []

    def _uniform(self):
        return float(self.rng.random())

    def random_params(self):
        values = {}
        for name in ControllerParams._fields:
            low, high = getattr(PARAM_SAMPLE_RANGES, name)
            value = low + self._uniform() * (high - low)
            values[name] = int(value) if name in INTEGER_GENES else value
        return ControllerParams(**values)

    def gaussian_random(self):
        """Standard normal draw via Box-Muller."""
        u1 = max(1e-6, self._uniform())
        u2 = self._uniform()
        return math.sqrt(-2 * math.log(u1)) * math.cos(2 * math.pi * u2)

    def crossover(self, parent1, parent2):
        alpha = self._uniform()
        child = {}
        for name in ControllerParams._fields:
            value = alpha * getattr(parent1, name) + (1 - alpha) * getattr(parent2, name)
            child[name] = int(round(value)) if name in INTEGER_GENES else value
        return ControllerParams(**child)

    def mutate(self, params):
        std = self.config.mutation_std_dev
        rate = self.config.mutation_rate
        scales = {
            "dryness_weight": std,
            "flood_weight": std,
            "water_weight": std,
            "prediction_horizon_ticks": 2,
            "fuzzy_dryness_scale": std * 0.5,
            "fuzzy_flood_scale": std * 0.5,
            "min_ticks_between_toggles": 1,
            "max_duty_cycle": std * 0.3,
        }

        mutated = params._asdict()
        for name in ControllerParams._fields:
            if self._uniform() < rate:
                step = self.gaussian_random() * scales[name]
                if name in INTEGER_GENES:
                    step = int(round(step))
                mutated[name] += step
        return clamp_params(mutated)

    def evaluate_population(self, population, eval_config):
        pending = [c for c in population if not c.evaluated]
        jobs = [(c.params, eval_config) for c in pending]

        if self.config.workers > 1 and len(jobs) > 1:
            with ProcessPoolExecutor(max_workers=self.config.workers) as executor:
                scores = list(executor.map(_evaluate_individual, jobs))
        else:
            scores = [_evaluate_individual(job) for job in jobs]

        for chromosome, score in zip(pending, scores):
            chromosome.fitness = score

    def evolve(self, eval_config):
        """
        Run the search one generation at a time.

        Yields a TrainingProgress after every fully evaluated generation;
        stopping iteration early leaves `best_chromosome` and
        `fitness_history` describing the generations completed so far.
        """
        size = self.config.population_size
        generations = self.config.generations
        num_elite = min(size, max(1, math.ceil(size * self.config.elitism_rate)))

        self.population = [Chromosome(self.random_params()) for _ in range(size)]
        self.best_chromosome = None
        self.fitness_history = []

        for generation in range(generations):
            self.evaluate_population(self.population, eval_config)

            # sort is stable, equal fitness keeps insertion order
            self.population.sort(key=lambda c: c.fitness, reverse=True)

            if self.best_chromosome is None or self.population[0].fitness > self.best_chromosome.fitness:
                self.best_chromosome = self.population[0]
            self.fitness_history.append(self.best_chromosome.fitness)

            avg_fitness = float(np.mean([c.fitness for c in self.population]))
            yield TrainingProgress(
                generation=generation,
                total_generations=generations,
                best_fitness=self.best_chromosome.fitness,
                avg_fitness=avg_fitness,
                fitness_history=list(self.fitness_history),
            )

            if generation == generations - 1:
                break

            elite = self.population[:num_elite]
            offspring = []
            while len(offspring) < size - num_elite:
                parent1 = elite[int(self._uniform() * len(elite))]
                parent2 = elite[int(self._uniform() * len(elite))]
                child = self.mutate(self.crossover(parent1.params, parent2.params))
                offspring.append(Chromosome(child))

            self.population = elite + offspring

    def train(self, eval_config, on_progress=None, verbose=True):
        if verbose:
            print("Starting genetic algorithm training...")
            print(f"Population: {self.config.population_size} | Generations: {self.config.generations}")
            print(f"Mutation rate: {self.config.mutation_rate} | Elitism: {self.config.elitism_rate * 100:.0f}%")

        for progress in self.evolve(eval_config):
            if verbose:
                print(
                    f"Generation {progress.generation + 1}/{progress.total_generations}, "
                    f"Best fitness: {progress.best_fitness:.2f}, Avg fitness: {progress.avg_fitness:.2f}"
                )
            if on_progress is not None:
                on_progress(progress)

        if verbose:
            print(f"\nTraining complete! Best fitness: {self.best_chromosome.fitness:.2f}")

        return TrainingResults(
            best_chromosome=self.best_chromosome,
            fitness_history=list(self.fitness_history),
            final_population=list(self.population),
        )


def train_smart_controller(garden_options, episodes_per_individual=2, verbose=True, **overrides):
    """Train with the default GA settings and return the best Chromosome."""
    trainer = GeneticAlgorithmTrainer(GATrainerConfig()._replace(**overrides))
    results = trainer.train(
        EvaluationConfig(garden_options, episodes_per_individual=episodes_per_individual),
        verbose=verbose,
    )
    return results.best_chromosome


if __name__ == "__main__":
    import os

    import matplotlib.pyplot as plt

    from environment import GardenIrrigationEnv
    from utils import evaluate_policy, plot_fitness_history, save_params

    os.makedirs("results/GA", exist_ok=True)

    options = GardenOptions()
    config = GATrainerConfig(seed=42, workers=os.cpu_count() or 1)
    trainer = GeneticAlgorithmTrainer(config)

    avg_history = []
    results = trainer.train(
        EvaluationConfig(options, episodes_per_individual=2),
        on_progress=lambda progress: avg_history.append(progress.avg_fitness),
    )
    best = results.best_chromosome

    training_id = save_params("GA", best.params, best.fitness, config=config._asdict())
    plot_fitness_history(results.fitness_history, "GA", avg_history=avg_history)
    print(f"Saved training {training_id}")
    print(f"Best parameters: {best.params}")

    # Final evaluation
    env = GardenIrrigationEnv(options)
    controller = SmartIrrigationController(FuzzyClimateEvaluator(), OutcomePredictor(), best.params)
    avg_reward, success_rate, avg_water_usage = evaluate_policy(
        env, env.controller_policy(controller), episodes=20, seed=options.seed
    )

    print("\nFinal Evaluation Results:")
    print(f"Average Reward: {avg_reward:.2f}")
    print(f"Success Rate (plants in healthy band): {success_rate:.2f}%")
    print(f"Average Water Usage: {avg_water_usage:.2f}")

    # Plot final episode
    state, _ = env.reset(seed=options.seed)
    policy = env.controller_policy(controller)
    done = False
    while not done:
        state, reward, terminated, truncated, _ = env.step(policy(state))
        done = terminated or truncated

    fig = env.plot_episode("Final")
    plt.savefig("results/GA/final_episode.png")
    plt.close()
