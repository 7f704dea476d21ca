import json
import os
import uuid
from datetime import datetime, timezone

import numpy as np
import matplotlib.pyplot as plt
import torch

from smart_controller import ControllerParams

RESULTS_ROOT = "results"


def create_results_directory(name, root=RESULTS_ROOT):
    """Create directory for saving results if it doesn't exist"""
    results_dir = os.path.join(root, name)
    os.makedirs(results_dir, exist_ok=True)
    return results_dir


def save_model(model, name, root=RESULTS_ROOT):
    """Save the model weights"""
    results_dir = create_results_directory(name, root)
    path = os.path.join(results_dir, "model.pt")
    torch.save(model.state_dict(), path)
    return path


def load_model(model, name, root=RESULTS_ROOT):
    """Load weights saved by save_model into `model`"""
    model.load_state_dict(torch.load(os.path.join(root, name, "model.pt")))
    return model


def save_params(name, params, fitness, config=None, root=RESULTS_ROOT):
    """
    Store a trained parameter set as JSON and return its id.

    The document holds id, name, params, fitness, timestamp and the training config.
    """
    trainings_dir = create_results_directory("trainings", root)
    training_id = uuid.uuid4().hex
    document = {
        "id": training_id,
        "name": name,
        "params": dict(params._asdict()),
        "fitness": fitness,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "config": config or {},
    }
    with open(os.path.join(trainings_dir, f"{training_id}.json"), "w") as f:
        json.dump(document, f, indent=2)
    return training_id


def load_params(training_id, root=RESULTS_ROOT):
    """Return (ControllerParams, document) for a saved training, or None if it does not exist"""
    path = os.path.join(root, "trainings", f"{training_id}.json")
    if not os.path.exists(path):
        return None
    with open(path) as f:
        document = json.load(f)
    return ControllerParams(**document["params"]), document


def list_trainings(root=RESULTS_ROOT):
    """All saved trainings, newest first"""
    trainings_dir = os.path.join(root, "trainings")
    if not os.path.isdir(trainings_dir):
        return []
    documents = []
    for filename in os.listdir(trainings_dir):
        if filename.endswith(".json"):
            with open(os.path.join(trainings_dir, filename)) as f:
                documents.append(json.load(f))
    documents.sort(key=lambda d: d["timestamp"], reverse=True)
    return documents


def plot_fitness_history(fitness_history, name, avg_history=None, root=RESULTS_ROOT):
    """Plot and save the best (and optionally average) fitness per generation"""
    results_dir = create_results_directory(name, root)

    plt.figure(figsize=(10, 6))
    plt.plot(range(1, len(fitness_history) + 1), fitness_history, marker='o', label='Best')
    if avg_history:
        plt.plot(range(1, len(avg_history) + 1), avg_history, alpha=0.6, label='Average')
    plt.xlabel('Generation')
    plt.ylabel('Fitness (final score)')
    plt.title(f'Fitness History - {name}')
    plt.legend()

    path = os.path.join(results_dir, "fitness_history.png")
    plt.savefig(path)
    plt.close()
    return path


def plot_comparison(controllers, avg_scores, std_scores, healthy_pcts, water_usage, root=RESULTS_ROOT):
    """Plot and save comparison between different irrigation controllers"""
    results_dir = create_results_directory("comparison", root)

    fig, axs = plt.subplots(3, 1, figsize=(12, 15))

    x = np.arange(len(controllers))
    axs[0].bar(x, avg_scores, yerr=std_scores, capsize=10)
    axs[0].set_ylabel('Avg Final Score')
    axs[0].set_title('Controller Performance Comparison')
    axs[0].set_xticks(x)
    axs[0].set_xticklabels(controllers)

    axs[1].bar(x, healthy_pcts)
    axs[1].set_ylabel('% Healthy Plant-Ticks')
    axs[1].set_title('Irrigation Effectiveness')
    axs[1].set_xticks(x)
    axs[1].set_xticklabels(controllers)

    axs[2].bar(x, water_usage)
    axs[2].set_ylabel('Average Water Usage')
    axs[2].set_title('Water Efficiency')
    axs[2].set_xticks(x)
    axs[2].set_xticklabels(controllers)

    plt.tight_layout()
    path = os.path.join(results_dir, "controller_comparison.png")
    plt.savefig(path)
    plt.close()
    return path


def evaluate_policy(env, policy, episodes=10, seed=None):
    """
    Evaluate a policy over several episodes

    Args:
        env: A GardenIrrigationEnv
        policy: A callable that takes an observation and returns an action
        episodes: Number of episodes to evaluate
        seed: Garden seed of the first episode; later episodes use seed + i

    Returns:
        avg_reward: Average total reward across episodes
        success_rate: Percentage of plant-ticks inside the healthy band
        avg_water_usage: Average water usage per episode
    """
    total_rewards = []
    healthy_plant_ticks = 0
    total_plant_ticks = 0
    total_water_usage = 0.0

    for episode in range(episodes):
        state, _ = env.reset(seed=None if seed is None else seed + episode)
        done = False
        episode_reward = 0

        while not done:
            action = policy(state)
            next_state, reward, terminated, truncated, info = env.step(action)

            episode_reward += reward
            status = info["plant_status"]
            healthy_plant_ticks += status["healthy"]
            total_plant_ticks += status["healthy"] + status["dry"] + status["flooded"]
            total_water_usage += info["water_used"]

            state = next_state
            done = terminated or truncated

        total_rewards.append(episode_reward)

    avg_reward = np.mean(total_rewards)
    success_rate = healthy_plant_ticks / total_plant_ticks * 100 if total_plant_ticks > 0 else 0
    avg_water_usage = total_water_usage / episodes

    return avg_reward, success_rate, avg_water_usage
