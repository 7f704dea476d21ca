import gymnasium as gym
import numpy as np
import matplotlib.pyplot as plt
from gymnasium import spaces

from consts import EPISODE_LENGTH, IDEAL_MIN_MOISTURE, IDEAL_MAX_MOISTURE
from controllers import ManualIrrigationController
from garden import PILLAR, TYPE_CODES, WATER_SOURCE
from metrics import compute_metrics, plant_status
from predictor_network import FEATURE_NAMES, build_input_features
from simulation import GardenOptions, create_simulation


class GardenIrrigationEnv(gym.Env):
    """
    Gymnasium view of a garden irrigation episode.

    Observation (all normalised to 0-1):
    - Temperature, humidity, sun, rain
    - Time of day
    - Fraction of plants too dry / too wet
    - Average plant moisture
    - Irrigation currently on

    Action space:
    - 0: irrigation off, 1: irrigation on

    Reward per tick:
    - (healthy - dry - 0.5 * flooded plants) / plant count
    - minus water_penalty * water used this tick
    """

    metadata = {'render_modes': ['human', 'rgb_array'], 'render_fps': 4}

    def __init__(self, options=None, config=None, episode_length=EPISODE_LENGTH, water_penalty=0.05,
                 render_mode=None):
        super(GardenIrrigationEnv, self).__init__()

        self.action_space = spaces.Discrete(2)
        self.observation_space = spaces.Box(
            low=np.zeros(len(FEATURE_NAMES), dtype=np.float32),
            high=np.ones(len(FEATURE_NAMES), dtype=np.float32),
            dtype=np.float32,
        )

        self.options = options if options is not None else GardenOptions()
        if not isinstance(self.options, GardenOptions):
            self.options = GardenOptions(**self.options)
        self.config = config
        self.max_steps = episode_length
        self.water_penalty = water_penalty
        self.render_mode = render_mode

        self.controller = ManualIrrigationController(enabled=True)
        self.simulation = None

        # History for plotting
        self.moisture_history = []
        self.action_history = []
        self.reward_history = []
        self.status_history = []
        self.water_history = []

    def _build_simulation(self, seed):
        options = self.options if seed is None else self.options._replace(seed=seed)
        self.simulation = create_simulation(
            options,
            controller=self.controller,
            config=self.config,
            episode_length=self.max_steps,
        )

    def _get_obs(self):
        sim = self.simulation
        metrics = compute_metrics(sim.garden, sim.state)
        return build_input_features(metrics, sim.state.weather, sim.state.irrigation_on)

    def step(self, action):
        sim = self.simulation
        self.controller.set_irrigation(action == 1)
        sim.step()

        status = plant_status(sim.garden)
        plants = max(1, status.dry + status.flooded + status.healthy)
        plant_reward = (status.healthy - status.dry - 0.5 * status.flooded) / plants
        reward = plant_reward - self.water_penalty * sim.state.water_used_this_tick

        terminated = sim.state.tick >= sim.state.episode_length
        truncated = False

        # Store history for plotting
        self.moisture_history.append(compute_metrics(sim.garden, sim.state).avg_moisture)
        self.action_history.append(int(action))
        self.reward_history.append(reward)
        self.status_history.append(status)
        self.water_history.append(sim.state.water_used_this_tick)

        info = {"plant_status": status._asdict(), "water_used": sim.state.water_used_this_tick}
        return self._get_obs(), reward, terminated, truncated, info

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)

        self.controller.set_irrigation(True)
        self._build_simulation(seed)

        # Reset history
        self.moisture_history = []
        self.action_history = []
        self.reward_history = []
        self.status_history = []
        self.water_history = []

        return self._get_obs(), {}

    def controller_policy(self, controller):
        """Wrap an IrrigationController as an observation -> action callable for this env."""
        def policy(state):
            sim = self.simulation
            metrics = compute_metrics(sim.garden, sim.state)
            return 1 if controller.decide(metrics, sim.state) else 0
        return policy

    def render(self):
        if self.simulation is None:
            return None
        garden = self.simulation.garden
        if self.render_mode == "rgb_array":
            # Blue channel scales with moisture, pillars black, paths grey
            wetness = np.clip(garden.moisture / self.simulation.state.config.max_moisture, 0, 1)
            frame = np.zeros((garden.height, garden.width, 3), dtype=np.uint8)
            frame[..., 0] = 150 * (1 - wetness)
            frame[..., 1] = 100 + 100 * garden.plants
            frame[..., 2] = 255 * wetness
            frame[~garden.soil_mask] = (128, 128, 128)
            frame[garden.types == TYPE_CODES[PILLAR]] = (0, 0, 0)
            return frame
        if self.render_mode == "human":
            hoses = garden.hose_mask()
            for y in range(garden.height):
                row = []
                for x in range(garden.width):
                    tile = garden.get_tile(x, y)
                    if tile.type == PILLAR:
                        row.append("#")
                    elif tile.has_plant:
                        row.append("p" if IDEAL_MIN_MOISTURE <= tile.moisture <= IDEAL_MAX_MOISTURE else "!")
                    elif tile.type == WATER_SOURCE:
                        row.append("W")
                    elif hoses[y, x]:
                        row.append("~")
                    else:
                        row.append(".")
                print("".join(row))
            print(f"tick {self.simulation.state.tick}, irrigation {'on' if self.simulation.state.irrigation_on else 'off'}")
        return None

    def close(self):
        self.simulation = None

    def plot_episode(self, episode):
        """
        Plot the plant health breakdown, average plant moisture against the
        healthy band, and irrigation state with water used per tick.
        """
        ticks = np.arange(1, len(self.status_history) + 1)
        dry = [s.dry for s in self.status_history]
        flooded = [s.flooded for s in self.status_history]
        healthy = [s.healthy for s in self.status_history]

        fig, axs = plt.subplots(3, 1, figsize=(10, 12), sharex=True)

        axs[0].stackplot(ticks, healthy, dry, flooded, labels=['Healthy', 'Dry', 'Flooded'],
                         colors=['tab:green', 'tab:orange', 'tab:blue'])
        axs[0].set_ylabel('Plants')
        axs[0].set_title(f'Episode {episode} - Plant Health')
        axs[0].legend(loc='upper right')

        axs[1].plot(ticks, self.moisture_history, color='tab:brown')
        axs[1].axhspan(IDEAL_MIN_MOISTURE, IDEAL_MAX_MOISTURE, color='tab:green', alpha=0.15,
                       label='Healthy band')
        axs[1].set_ylabel('Average Plant Moisture')
        axs[1].legend(loc='upper right')

        axs[2].fill_between(ticks, self.action_history, step='pre', alpha=0.3, label='Irrigation on')
        axs[2].set_ylabel('Irrigation')
        axs[2].set_yticks([0, 1])
        axs[2].set_yticklabels(['Off', 'On'])
        water_axis = axs[2].twinx()
        water_axis.plot(ticks, self.water_history, color='tab:blue')
        water_axis.set_ylabel('Water Used')
        axs[2].set_xlabel('Tick')

        plt.tight_layout()
        return fig
