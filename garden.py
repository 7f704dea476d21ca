import numpy as np
from collections import namedtuple

from consts import PATH_MOVEMENT_COST, SOIL_MOVEMENT_COST

SOIL = "soil"
PATH = "path"
PILLAR = "pillar"
WATER_SOURCE = "water_source"

# Index in this tuple is the code stored in Garden.types
TILE_TYPES = (SOIL, PATH, PILLAR, WATER_SOURCE)
TYPE_CODES = {name: code for code, name in enumerate(TILE_TYPES)}

MOVEMENT_COSTS = {
    PATH: PATH_MOVEMENT_COST,
    WATER_SOURCE: PATH_MOVEMENT_COST,
    SOIL: SOIL_MOVEMENT_COST,
    PILLAR: float("inf"),
}

ASCII_TILES = {
    ".": (SOIL, False),
    "p": (SOIL, True),
    "=": (PATH, False),
    "#": (PILLAR, False),
    "W": (WATER_SOURCE, False),
}

Tile = namedtuple("Tile", ["x", "y", "type", "has_plant", "moisture"])

# tiles: ordered (x, y) positions from the network attachment point towards the plant
HosePath = namedtuple("HosePath", ["id", "source", "target", "tiles"])


def _frozen(array, dtype):
    if isinstance(array, np.ndarray) and array.dtype == dtype and not array.flags.writeable:
        return array
    array = np.array(array, dtype=dtype)
    array.flags.writeable = False
    return array


def manhattan(a, b):
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


class Garden:
    """
    Immutable snapshot of the garden grid.

    Tile types, plant flags and moisture are stored as (height, width) arrays
    indexed [y, x]. Arrays are read-only; every transition (moisture step,
    hose planning) builds a new Garden and shares whatever did not change.

    Tile types:
    - soil: plantable, holds moisture, hose cost 1.3
    - path: hose cost 1.0, moisture barrier
    - pillar: impassable for hoses
    - water_source: hose root, hose cost 1.0
    """

    def __init__(self, types, plants, moisture=None, hoses=(), seed=None):
        types = np.asarray(types)
        if types.ndim != 2:
            raise ValueError(f"tile type grid must be 2-dimensional, got shape {types.shape}")
        if types.size and (types.min() < 0 or types.max() >= len(TILE_TYPES)):
            raise ValueError("tile type grid contains unknown type codes")
        plants = np.asarray(plants, dtype=bool)
        if plants.shape != types.shape:
            raise ValueError(f"plant grid shape {plants.shape} does not match tile grid {types.shape}")
        if moisture is None:
            moisture = np.zeros(types.shape, dtype=np.float64)
        moisture = np.asarray(moisture, dtype=np.float64)
        if moisture.shape != types.shape:
            raise ValueError(f"moisture grid shape {moisture.shape} does not match tile grid {types.shape}")

        self.types = _frozen(types, np.int8)
        self.plants = _frozen(plants, bool)
        self.moisture = _frozen(moisture, np.float64)
        self.hoses = tuple(hoses)
        self.seed = seed
        self.height, self.width = self.types.shape

        # Derived masks depend only on types and hoses, so they are shared
        # between gardens that differ only in moisture.
        self._cache = {}

    # ------------------------------------------------------------------
    # Derivation

    def with_moisture(self, moisture):
        garden = Garden(self.types, self.plants, moisture, self.hoses, self.seed)
        garden._cache = self._cache
        return garden

    def with_hoses(self, hoses):
        return Garden(self.types, self.plants, self.moisture, hoses, self.seed)

    # ------------------------------------------------------------------
    # Tile queries

    def in_bounds(self, x, y):
        return 0 <= x < self.width and 0 <= y < self.height

    def get_tile(self, x, y):
        if not self.in_bounds(x, y):
            return None
        return Tile(
            x, y,
            TILE_TYPES[self.types[y, x]],
            bool(self.plants[y, x]),
            float(self.moisture[y, x]),
        )

    def neighbors4(self, pos):
        x, y = pos
        out = []
        for dx, dy in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            tile = self.get_tile(x + dx, y + dy)
            if tile is not None:
                out.append(tile)
        return out

    def is_walkable_for_hose(self, tile):
        return tile.type != PILLAR

    def movement_cost(self, tile):
        return MOVEMENT_COSTS[tile.type]

    @property
    def tiles(self):
        """Row-major tile matrix, tiles[y][x]."""
        return [[self.get_tile(x, y) for x in range(self.width)] for y in range(self.height)]

    def _tiles_where(self, mask):
        ys, xs = np.nonzero(mask)
        return [self.get_tile(int(x), int(y)) for y, x in zip(ys, xs)]

    def find_tiles_by_type(self, tile_type):
        return self._tiles_where(self.types == TYPE_CODES[tile_type])

    def find_plant_tiles(self):
        return self._tiles_where(self.plants)

    def find_water_sources(self):
        return self.find_tiles_by_type(WATER_SOURCE)

    @property
    def soil_mask(self):
        if "soil" not in self._cache:
            mask = self.types == TYPE_CODES[SOIL]
            mask.flags.writeable = False
            self._cache["soil"] = mask
        return self._cache["soil"]

    @property
    def plant_count(self):
        return int(self.plants.sum())

    # ------------------------------------------------------------------
    # Hose network

    def hose_mask(self):
        """Network tiles: water sources plus every hose tile (pillars never count)."""
        if "hose" not in self._cache:
            mask = self.types == TYPE_CODES[WATER_SOURCE]
            for hose in self.hoses:
                for x, y in hose.tiles:
                    if self.in_bounds(x, y):
                        mask[y, x] = True
            mask &= self.types != TYPE_CODES[PILLAR]
            mask.flags.writeable = False
            self._cache["hose"] = mask
        return self._cache["hose"]

    def irrigated_mask(self, coverage_radius):
        """Soil tiles within Manhattan distance `coverage_radius` of a network tile."""
        key = ("irrigated", coverage_radius)
        if key not in self._cache:
            covered = np.zeros(self.types.shape, dtype=bool)
            ys, xs = np.nonzero(self.hose_mask())
            for dy in range(-coverage_radius, coverage_radius + 1):
                span = coverage_radius - abs(dy)
                for dx in range(-span, span + 1):
                    ny, nx = ys + dy, xs + dx
                    inside = (ny >= 0) & (ny < self.height) & (nx >= 0) & (nx < self.width)
                    covered[ny[inside], nx[inside]] = True
            covered &= self.soil_mask
            covered.flags.writeable = False
            self._cache[key] = covered
        return self._cache[key]

    def __repr__(self):
        return (
            f"Garden({self.width}x{self.height}, plants={self.plant_count}, "
            f"hoses={len(self.hoses)}, seed={self.seed})"
        )


def garden_from_ascii(rows, moisture=0.0, seed=None):
    """
    Build a garden from a list of equal-length strings.

    Legend: '.' soil, 'p' soil with a plant, '=' path, '#' pillar, 'W' water source.
    Soil tiles start at `moisture`, everything else at zero.
    """
    if not rows or len({len(row) for row in rows}) != 1:
        raise ValueError("ascii garden rows must be non-empty and of equal length")

    types = np.zeros((len(rows), len(rows[0])), dtype=np.int8)
    plants = np.zeros(types.shape, dtype=bool)
    for y, row in enumerate(rows):
        for x, char in enumerate(row):
            if char not in ASCII_TILES:
                raise ValueError(f"unknown tile character {char!r} at ({x}, {y})")
            tile_type, has_plant = ASCII_TILES[char]
            types[y, x] = TYPE_CODES[tile_type]
            plants[y, x] = has_plant

    initial = np.where(types == TYPE_CODES[SOIL], moisture, 0.0)
    return Garden(types, plants, initial, seed=seed)
