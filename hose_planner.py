from collections import namedtuple

from garden import HosePath, manhattan
from pathfinding import a_star, manhattan_heuristic, path_cost

PlannerStep = namedtuple("PlannerStep", ["hose", "covered_plants", "total_plants"])


class _HoseNetwork:
    """Positions reachable by water: water sources plus every hose tile laid so far."""

    def __init__(self, positions):
        self.positions = []
        self._members = set()
        self.extend(positions)

    def extend(self, positions):
        added = []
        for pos in positions:
            if pos not in self._members:
                self._members.add(pos)
                self.positions.append(pos)
                added.append(pos)
        return added

    def __contains__(self, pos):
        return pos in self._members

    def nearest(self, pos):
        best = None
        best_dist = float("inf")
        for candidate in self.positions:
            d = manhattan(candidate, pos)
            if d < best_dist:
                best, best_dist = candidate, d
        return best


def _cost_grid(garden):
    return [
        [garden.movement_cost(garden.get_tile(x, y)) for x in range(garden.width)]
        for y in range(garden.height)
    ]


def iter_hose_plan(garden, coverage_radius=1):
    """
    Grow a hose tree from the water sources, one connection at a time.

    A plant counts as covered once any network tile lies within
    `coverage_radius` (Manhattan) of it. Each round runs A* from every
    uncovered plant to its nearest network tile and keeps the cheapest
    connection, minus the plant tile itself so the hose stops next to it.
    Plants that cannot be reached are left uncovered.

    Yields a PlannerStep after the initial coverage check (hose=None) and
    after every hose that is added.
    """
    sources = [(t.x, t.y) for t in garden.find_water_sources()]
    plants = [(t.x, t.y) for t in garden.find_plant_tiles()]
    if not sources or not plants:
        yield PlannerStep(None, 0, len(plants))
        return

    costs = _cost_grid(garden)
    width, height = garden.width, garden.height

    def get_neighbors(pos):
        x, y = pos
        for nx, ny in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
            if 0 <= nx < width and 0 <= ny < height:
                cost = costs[ny][nx]
                if cost != float("inf"):
                    yield (nx, ny), cost

    network = _HoseNetwork(sources)
    uncovered = list(plants)

    def mark_covered(new_positions):
        still_uncovered = []
        for plant in uncovered:
            if not any(manhattan(pos, plant) <= coverage_radius for pos in new_positions):
                still_uncovered.append(plant)
        uncovered[:] = still_uncovered

    mark_covered(network.positions)
    yield PlannerStep(None, len(plants) - len(uncovered), len(plants))

    hose_count = 0
    while uncovered:
        best_path = None
        best_cost = float("inf")

        for plant in uncovered:
            target = network.nearest(plant)
            path = a_star(plant, target, get_neighbors, manhattan_heuristic)
            if path is None or len(path) < 2:
                continue

            # Hoses end beside the plant, not on it
            effective = path[1:]
            if all(pos in network for pos in effective):
                continue
            cost = path_cost(effective, lambda pos: costs[pos[1]][pos[0]])
            if cost < best_cost:
                best_cost = cost
                best_path = effective

        if best_path is None:
            break

        hose_count += 1
        tiles = tuple(reversed(best_path))
        hose = HosePath(
            id=f"hose-{hose_count}",
            source=tiles[0],
            target=tiles[-1],
            tiles=tiles,
        )
        mark_covered(network.extend(tiles))
        yield PlannerStep(hose, len(plants) - len(uncovered), len(plants))


def plan_hoses(garden, coverage_radius=1):
    """Return a copy of `garden` carrying the planned hose network."""
    hoses = [step.hose for step in iter_hose_plan(garden, coverage_radius) if step.hose is not None]
    return garden.with_hoses(hoses)


def covered_plant_count(garden, coverage_radius):
    network = [(t.x, t.y) for t in garden.find_water_sources()]
    for hose in garden.hoses:
        network.extend(hose.tiles)
    return sum(
        1
        for plant in garden.find_plant_tiles()
        if any(manhattan(pos, (plant.x, plant.y)) <= coverage_radius for pos in network)
    )
