import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim

from controllers import ManualIrrigationController
from metrics import compute_metrics, to_fraction
from simulation import GardenOptions, create_simulation

FEATURE_NAMES = (
    "temperature",
    "humidity",
    "sun",
    "rain",
    "time_of_day",
    "dry_fraction",
    "wet_fraction",
    "avg_moisture",
    "irrigation",
)


def build_input_features(metrics, weather, irrigation_on):
    """
    Normalised feature vector for the dryness predictor.

    Plant percentages are converted from the 0-100 Metrics scale to [0, 1];
    average moisture is scaled from roughly [0, 1.5].
    """
    return np.array(
        [
            np.clip(weather.temperature / 40.0, 0, 1),
            np.clip(weather.humidity, 0, 1),
            np.clip(weather.sun_intensity, 0, 1),
            np.clip(weather.rain_intensity, 0, 1),
            np.clip(metrics.time_of_day, 0, 1),
            to_fraction(metrics.percent_too_dry),
            to_fraction(metrics.percent_too_wet),
            np.clip(metrics.avg_moisture / 1.5, 0, 1),
            1.0 if irrigation_on else 0.0,
        ],
        dtype=np.float32,
    )


class DrynessPredictorNetwork(nn.Module):
    def __init__(self, input_size=len(FEATURE_NAMES), hidden_size=16):
        super(DrynessPredictorNetwork, self).__init__()
        self.input_size = input_size

        self.network = nn.Sequential(
            nn.Linear(input_size, hidden_size),
            nn.ReLU(),
            nn.Linear(hidden_size, 1),
            nn.Sigmoid(),
        )

    def forward(self, features):
        return self.network(features).squeeze(-1)


class NeuralOutcomePredictor:
    """
    Outcome predictor backed by a small MLP.

    Drop-in replacement for smart_controller.OutcomePredictor. The network is
    trained for a single horizon, so the horizon argument is accepted for
    interface compatibility only.
    """

    def __init__(self, network=None):
        network = network if network is not None else DrynessPredictorNetwork()
        if network.input_size != len(FEATURE_NAMES):
            raise ValueError(
                f"predictor network expects {network.input_size} input features, "
                f"but the feature vector has {len(FEATURE_NAMES)}"
            )
        self.network = network
        self.network.eval()

    def predict_future_dryness(self, metrics, weather, state, irrigation_on, horizon=10):
        features = build_input_features(metrics, weather, irrigation_on)
        with torch.no_grad():
            prediction = self.network(torch.from_numpy(features).unsqueeze(0))
        return float(prediction.item())


def collect_training_samples(options=GardenOptions(), episodes=5, horizon=10, episode_length=200,
                             toggle_probability=0.1, seed=0):
    """
    Record (features, dry fraction `horizon` ticks later) pairs from simulated
    episodes driven by a seeded random on/off policy.
    """
    if not isinstance(options, GardenOptions):
        options = GardenOptions(**options)
    rng = np.random.default_rng(seed)
    controller = ManualIrrigationController(enabled=True)

    features = []
    targets = []
    for episode in range(episodes):
        sim = create_simulation(
            options._replace(seed=options.seed + episode),
            controller=controller,
            episode_length=episode_length,
        )
        rows = []
        dryness = []
        while sim.state.tick < sim.state.episode_length:
            if rng.random() < toggle_probability:
                controller.set_irrigation(not controller.irrigation_enabled)
            metrics = compute_metrics(sim.garden, sim.state)
            rows.append(build_input_features(metrics, sim.state.weather, controller.irrigation_enabled))
            dryness.append(to_fraction(metrics.percent_too_dry))
            sim.step()

        for i in range(len(rows) - horizon):
            features.append(rows[i])
            targets.append(dryness[i + horizon])

    if not features:
        return np.zeros((0, len(FEATURE_NAMES)), dtype=np.float32), np.zeros(0, dtype=np.float32)
    return np.stack(features), np.array(targets, dtype=np.float32)


def train_predictor(features, targets, epochs=50, lr=1e-3, batch_size=64, hidden_size=16, seed=0,
                    print_freq=0):
    """Fit a DrynessPredictorNetwork with Adam / MSE and return (predictor, epoch_losses)."""
    if len(features) != len(targets):
        raise ValueError("features and targets must have the same length")
    if len(features) == 0:
        raise ValueError("no training samples")

    torch.manual_seed(seed)
    network = DrynessPredictorNetwork(features.shape[1], hidden_size)
    optimizer = optim.Adam(network.parameters(), lr=lr)
    loss_fn = nn.MSELoss()

    inputs = torch.FloatTensor(features)
    labels = torch.FloatTensor(targets)

    losses = []
    for epoch in range(1, epochs + 1):
        network.train()
        permutation = torch.randperm(len(inputs))
        epoch_loss = 0.0
        for start in range(0, len(inputs), batch_size):
            batch = permutation[start:start + batch_size]
            loss = loss_fn(network(inputs[batch]), labels[batch])

            optimizer.zero_grad()
            loss.backward()
            optimizer.step()

            epoch_loss += loss.item() * len(batch)
        losses.append(epoch_loss / len(inputs))

        if print_freq and epoch % print_freq == 0:
            print(f"Epoch {epoch}, Loss: {losses[-1]:.5f}")

    return NeuralOutcomePredictor(network), losses
