import pytest

from garden import garden_from_ascii
from pathfinding import a_star, manhattan_heuristic, path_cost


def _grid_neighbors(garden):
    def get_neighbors(pos):
        for tile in garden.neighbors4(pos):
            if garden.is_walkable_for_hose(tile):
                yield (tile.x, tile.y), garden.movement_cost(tile)
    return get_neighbors


def _cost_of(garden):
    return lambda pos: garden.movement_cost(garden.get_tile(*pos))


def test_straight_line():
    garden = garden_from_ascii(["....."])
    path = a_star((0, 0), (4, 0), _grid_neighbors(garden), manhattan_heuristic)
    assert path == [(0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]


def test_start_equals_goal():
    garden = garden_from_ascii(["..."])
    assert a_star((1, 0), (1, 0), _grid_neighbors(garden)) == [(1, 0)]


def test_routes_around_pillars():
    garden = garden_from_ascii(
        [
            ".#.",
            ".#.",
            "...",
        ]
    )
    path = a_star((0, 0), (2, 0), _grid_neighbors(garden))
    assert path[0] == (0, 0) and path[-1] == (2, 0)
    assert len(path) == 7
    assert (1, 0) not in path and (1, 1) not in path


def test_unreachable_goal_returns_none():
    garden = garden_from_ascii(
        [
            "..#.",
            "..#.",
        ]
    )
    assert a_star((0, 0), (3, 0), _grid_neighbors(garden)) is None


def test_prefers_cheaper_path_tiles():
    # Going through the path row costs 1.0 per tile instead of 1.3
    garden = garden_from_ascii(
        [
            ".....",
            "=====",
        ]
    )
    neighbors = _grid_neighbors(garden)
    path = a_star((0, 1), (4, 1), neighbors)
    assert all(y == 1 for _, y in path)
    assert path_cost(path[1:], _cost_of(garden)) == pytest.approx(4.0)


def test_path_is_optimal_on_weighted_grid():
    garden = garden_from_ascii(
        [
            "=....",
            "=.#..",
            "=====",
        ]
    )
    path = a_star((0, 0), (4, 0), _grid_neighbors(garden))
    # Top row: 4 soil tiles = 5.2; detour over the path tiles: 6 path + 2 soil = 8.6
    assert path_cost(path[1:], _cost_of(garden)) == pytest.approx(5.2)
    for a, b in zip(path, path[1:]):
        assert manhattan_heuristic(a, b) == 1
