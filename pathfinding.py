import heapq
import itertools


def manhattan_heuristic(a, b):
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def a_star(start, goal, get_neighbors, heuristic=manhattan_heuristic):
    """
    A* shortest path on a weighted grid.

    Args:
        start: (x, y) start position
        goal: (x, y) goal position
        get_neighbors: callable(pos) -> iterable of (neighbor_pos, edge_cost)
        heuristic: admissible estimate callable(pos, goal) -> float

    Returns:
        List of positions from start to goal inclusive, or None if the goal
        is unreachable.
    """
    start = tuple(start)
    goal = tuple(goal)

    # Counter breaks f-score ties in insertion order
    counter = itertools.count()
    open_heap = [(heuristic(start, goal), next(counter), start)]
    came_from = {}
    g_score = {start: 0.0}
    closed = set()

    while open_heap:
        _, _, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        if current == goal:
            return _reconstruct_path(came_from, current)
        closed.add(current)

        current_g = g_score[current]
        for neighbor, cost in get_neighbors(current):
            neighbor = tuple(neighbor)
            if neighbor in closed:
                continue
            tentative_g = current_g + cost
            if tentative_g < g_score.get(neighbor, float("inf")):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                heapq.heappush(
                    open_heap,
                    (tentative_g + heuristic(neighbor, goal), next(counter), neighbor),
                )

    return None


def _reconstruct_path(came_from, current):
    path = [current]
    while current in came_from:
        current = came_from[current]
        path.append(current)
    path.reverse()
    return path


def path_cost(path, cost_of):
    return sum(cost_of(pos) for pos in path)
