"""
Shared constants for the garden irrigation simulation.
"""

# Healthy moisture band for a planted tile
IDEAL_MIN_MOISTURE = 0.1
IDEAL_MAX_MOISTURE = 1.0

# Time
TICKS_PER_DAY = 100
EPISODE_LENGTH = 50
FORECAST_TICK_WINDOW = 10

# Weather
BASE_TEMPERATURE = 20.0
TEMPERATURE_SWING = 10.0
RAIN_START_PROBABILITY = 0.01
RAIN_START_INTENSITY = 0.5
RAIN_DECAY_PER_TICK = 0.05

# Terrain
GARDEN_PATH_BRANCH_COUNT = 6

# Hose movement costs
PATH_MOVEMENT_COST = 1.0
SOIL_MOVEMENT_COST = 1.3
