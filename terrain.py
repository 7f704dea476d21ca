import numpy as np

from consts import GARDEN_PATH_BRANCH_COUNT
from garden import Garden, TYPE_CODES, SOIL, PATH, PILLAR, WATER_SOURCE

_SOIL = TYPE_CODES[SOIL]
_PATH = TYPE_CODES[PATH]
_PILLAR = TYPE_CODES[PILLAR]
_WATER = TYPE_CODES[WATER_SOURCE]


def _erode_corners(types, rng, probability=0.8):
    """Bite a small triangle out of each corner with the given probability."""
    h, w = types.shape
    max_size = max(2, min(w, h) // 5)
    for flip_x, flip_y in ((False, False), (True, False), (False, True), (True, True)):
        if rng.random() > probability:
            continue
        size = 2 + int(rng.random() * (max_size - 1))
        for dy in range(size):
            for dx in range(size - dy):
                gx = w - 1 - dx if flip_x else dx
                gy = h - 1 - dy if flip_y else dy
                if 0 <= gx < w and 0 <= gy < h:
                    types[gy, gx] = _PILLAR


def _erode_edges(types, rng):
    """Randomly notch each side of the garden."""
    h, w = types.shape
    max_depth = max(1, min(w, h) // 10)
    for side in ("top", "bottom", "left", "right"):
        if rng.random() > 0.5:
            continue
        depth = 1 + int(rng.random() * max_depth)
        if side in ("top", "bottom"):
            span = max(3, int(w * 0.2))
            start = int(rng.random() * max(1, w - span))
            rows = slice(0, depth) if side == "top" else slice(max(0, h - depth), h)
            types[rows, start:start + span] = _PILLAR
        else:
            span = max(3, int(h * 0.2))
            start = int(rng.random() * max(1, h - span))
            cols = slice(0, depth) if side == "left" else slice(max(0, w - depth), w)
            types[start:start + span, cols] = _PILLAR


def _carve(types, x, y, code):
    h, w = types.shape
    if 0 <= x < w and 0 <= y < h and types[y, x] != _PILLAR:
        types[y, x] = code


def _carve_paths(types, rng):
    """Main cross through the centre plus random branches off it."""
    h, w = types.shape
    mid_x, mid_y = w // 2, h // 2
    for y in range(h):
        _carve(types, mid_x, y, _PATH)
    for x in range(w):
        _carve(types, x, mid_y, _PATH)

    for _ in range(GARDEN_PATH_BRANCH_COUNT):
        from_vertical = rng.random() < 0.5
        if from_vertical:
            y = int(rng.random() * h)
            direction = -1 if rng.random() < 0.5 else 1
            length = int(w * (0.2 + rng.random() * 0.3))
            x = mid_x
            for _ in range(length):
                x += direction
                if not 0 <= x < w:
                    break
                _carve(types, x, y, _PATH)
        else:
            x = int(rng.random() * w)
            direction = -1 if rng.random() < 0.5 else 1
            length = int(h * (0.2 + rng.random() * 0.3))
            y = mid_y
            for _ in range(length):
                y += direction
                if not 0 <= y < h:
                    break
                _carve(types, x, y, _PATH)


def _near_path(types):
    """Soil tiles with a path or water source as an orthogonal neighbour."""
    walkway = (types == _PATH) | (types == _WATER)
    near = np.zeros(types.shape, dtype=bool)
    near[1:, :] |= walkway[:-1, :]
    near[:-1, :] |= walkway[1:, :]
    near[:, 1:] |= walkway[:, :-1]
    near[:, :-1] |= walkway[:, 1:]
    return near & (types == _SOIL)


def _plant(types, rng, plant_chance_near_path):
    h, w = types.shape
    plants = np.zeros(types.shape, dtype=bool)
    ys, xs = np.nonzero(_near_path(types))
    candidates = list(zip(xs.tolist(), ys.tolist()))
    if not candidates:
        return plants

    cluster_count = max(3, int(len(candidates) * plant_chance_near_path * 0.12))
    cluster_count += int(rng.random() * 3)

    for _ in range(cluster_count):
        cx, cy = candidates[int(rng.random() * len(candidates))]
        radius = 2 + int(rng.random() * 2)
        for dy in range(-radius, radius + 1):
            for dx in range(-radius, radius + 1):
                nx, ny = cx + dx, cy + dy
                if not (0 <= nx < w and 0 <= ny < h) or types[ny, nx] != _SOIL:
                    continue
                dist = np.hypot(dx, dy)
                if dist > radius:
                    continue
                # Denser towards the cluster centre
                probability = 0.25 + (0.9 - 0.25) * (1 - dist / radius)
                if rng.random() < probability:
                    plants[ny, nx] = True

    for x, y in candidates:
        if not plants[y, x] and rng.random() < plant_chance_near_path * 0.2:
            plants[y, x] = True
    return plants


def _place_water_sources(types, rng):
    """Turn 2-4 border path tiles (at most one per side) into water sources."""
    h, w = types.shape
    edges = [
        [(x, 0) for x in range(w) if types[0, x] == _PATH],
        [(x, h - 1) for x in range(w) if types[h - 1, x] == _PATH],
        [(0, y) for y in range(h) if types[y, 0] == _PATH],
        [(w - 1, y) for y in range(h) if types[y, w - 1] == _PATH],
    ]
    picks = [edge[int(rng.random() * len(edge))] for edge in edges if edge]
    count = min(len(picks), 2 + int(rng.random() * 3))
    rng.shuffle(picks)
    for x, y in picks[:count]:
        types[y, x] = _WATER


def generate_garden(width=30, height=20, pillar_density=0.04, plant_chance_near_path=0.25,
                    seed=42):
    """
    Procedurally generate a garden.

    Steps: all-soil canvas, corner and edge erosion into pillars, a central
    cross of paths with random branches, scattered pillars on leftover soil,
    plant clusters next to paths, and water sources where paths meet the
    border. Moisture starts at zero and there are no hoses yet.
    """
    rng = np.random.default_rng(seed)
    types = np.full((height, width), _SOIL, dtype=np.int8)

    _erode_corners(types, rng)
    _erode_edges(types, rng)
    _carve_paths(types, rng)

    scatter = rng.random(types.shape) < pillar_density
    types[scatter & (types == _SOIL)] = _PILLAR

    plants = _plant(types, rng, plant_chance_near_path)
    _place_water_sources(types, rng)

    return Garden(types, plants, seed=seed)
