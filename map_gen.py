"""
Grid geometry, pathfinding and arena generation for the 12x12 territory game.

Coordinates are (x, y) tuples. Adjacency is four-connected. Manhattan
distance is the path-cost metric; squared Euclidean distance is only used
as a cheaper ranking proxy.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set, Tuple

import numpy as np

from models import GRID_SIZE, ME, OPPONENT, BuildingType, Position, TurnSnapshot

HQ_POSITIONS: Tuple[Position, Position] = ((0, 0), (GRID_SIZE - 1, GRID_SIZE - 1))


def get_neighbors(x: int, y: int) -> List[Position]:
    """
    Get the 4 neighbouring coordinates, without bounds checking.

    Order is fixed (down, up, left, right) so every caller iterating
    neighbours sees the same sequence.
    """
    return [(x, y - 1), (x, y + 1), (x - 1, y), (x + 1, y)]


def is_valid_position(position: Position) -> bool:
    """Check if a coordinate lies on the 12x12 grid."""
    x, y = position
    return 0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE


def get_valid_neighbors(position: Position) -> List[Position]:
    return [p for p in get_neighbors(*position) if is_valid_position(p)]


def manhattan_distance(a: Position, b: Position) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def square_distance(a: Position, b: Position) -> int:
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    return dx * dx + dy * dy


def a_star_pathfinding(
    start: Position,
    goal: Position,
    is_walkable: Callable[[Position], bool],
    blocked: Iterable[Position] = (),
) -> Optional[List[Position]]:
    """
    A* pathfinding on the four-connected grid.

    Args:
        start: Starting coordinate (never checked for walkability)
        goal: Goal coordinate
        is_walkable: Predicate rejecting impassable coordinates
        blocked: Extra coordinates to avoid this search

    Returns:
        Coordinates from the first step to the goal (start excluded),
        [] when start == goal, or None if the goal cannot be reached.

    Open nodes with equal g + h are expanded lowest h first, then lowest
    (x, y), so results are deterministic.
    """
    return a_star_from_any([start], goal, is_walkable, blocked)


def a_star_from_any(
    starts: Iterable[Position],
    goal: Position,
    is_walkable: Callable[[Position], bool],
    blocked: Iterable[Position] = (),
) -> Optional[List[Position]]:
    """
    A* seeded with every start at g = 0.

    The returned path begins next to whichever start is closest to the goal
    and never passes through another start. Arguments and return value are
    as for a_star_pathfinding.
    """
    start_set: Set[Position] = set(starts)
    if goal in start_set:
        return []
    if not start_set:
        return None

    blocked_set: Set[Position] = set(blocked)

    def passable(position: Position) -> bool:
        return position not in blocked_set and is_walkable(position)

    if not is_valid_position(goal) or not passable(goal):
        return None

    open_set = set(start_set)
    closed_set: Set[Position] = set()
    came_from = {}
    g_score = {start: 0 for start in start_set}

    while open_set:
        current = min(
            open_set,
            key=lambda p: (g_score[p] + manhattan_distance(p, goal), manhattan_distance(p, goal), p),
        )

        if current == goal:
            path = []
            while current not in start_set:
                path.append(current)
                current = came_from[current]
            path.reverse()
            return path

        open_set.remove(current)
        closed_set.add(current)

        for neighbor in get_valid_neighbors(current):
            if neighbor in closed_set or not passable(neighbor):
                continue

            tentative_g_score = g_score[current] + 1
            if neighbor not in g_score or tentative_g_score < g_score[neighbor]:
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g_score
                open_set.add(neighbor)

    return None


@dataclass
class GeneratedMap:
    """A point-symmetric arena seen from player 0 (HQ at the top-left corner)."""
    seed: int
    rows: List[str]
    mine_spots: List[Position] = field(default_factory=list)
    headquarters: Tuple[Position, Position] = HQ_POSITIONS


def generate_void_mask(rng: np.random.Generator, void_ratio: float) -> np.ndarray:
    """
    Draw impassable tiles and mirror them by a half turn.

    The mask is indexed [y, x]; True means VOID. The 2x2 block around each
    HQ corner is always left open.
    """
    mask = rng.random((GRID_SIZE, GRID_SIZE)) < void_ratio
    mask = mask | np.rot90(mask, 2)
    mask[0:2, 0:2] = False
    mask[-2:, -2:] = False
    return mask


def fill_unreachable(mask: np.ndarray, origin: Position) -> np.ndarray:
    """Turn open pockets that cannot be reached from origin into VOID."""
    reachable = np.zeros_like(mask)
    stack = [origin]
    reachable[origin[1], origin[0]] = True
    while stack:
        current = stack.pop()
        for nx, ny in get_valid_neighbors(current):
            if not mask[ny, nx] and not reachable[ny, nx]:
                reachable[ny, nx] = True
                stack.append((nx, ny))
    return mask | ~reachable


def place_mine_spots(rng: np.random.Generator, mask: np.ndarray, pairs: int) -> List[Position]:
    """Pick mirrored mine spot pairs on open tiles away from both HQs."""
    candidates = [
        (x, y)
        for y in range(GRID_SIZE)
        for x in range(GRID_SIZE)
        if not mask[y, x]
        and x + y < GRID_SIZE - 1
        and min(manhattan_distance((x, y), hq) for hq in HQ_POSITIONS) >= 2
    ]
    if not candidates:
        return []

    chosen = rng.choice(len(candidates), size=min(pairs, len(candidates)), replace=False)
    spots = []
    for index in sorted(int(i) for i in chosen):
        x, y = candidates[index]
        spots.append((x, y))
        spots.append((GRID_SIZE - 1 - x, GRID_SIZE - 1 - y))
    return spots


def mask_to_rows(mask: np.ndarray) -> List[str]:
    grid = np.where(mask, '#', '.')
    grid[HQ_POSITIONS[0][1], HQ_POSITIONS[0][0]] = 'O'
    grid[HQ_POSITIONS[1][1], HQ_POSITIONS[1][0]] = 'X'
    return [''.join(row) for row in grid]


def generate_map(seed: int, void_ratio: float = 0.2, max_attempts: int = 10) -> GeneratedMap:
    """
    Generate a procedural arena.

    Each attempt reseeds with seed + attempt. An attempt is kept when the two
    HQs are connected; pockets cut off from the HQs are filled in. If no
    attempt connects the HQs, an open arena is returned.

    Args:
        seed: Random seed for reproducible generation
        void_ratio: Probability of a tile being drawn as VOID before mirroring
        max_attempts: Maximum number of reseeded attempts

    Returns:
        GeneratedMap with rows, mine spots and HQ positions
    """
    for attempt in range(max_attempts):
        rng = np.random.default_rng(seed + attempt)
        mask = generate_void_mask(rng, void_ratio)

        path = a_star_pathfinding(HQ_POSITIONS[0], HQ_POSITIONS[1], lambda p: not mask[p[1], p[0]])
        if path is None:
            continue

        mask = fill_unreachable(mask, HQ_POSITIONS[0])
        pairs = int(rng.integers(2, 5))
        return GeneratedMap(
            seed=seed,
            rows=mask_to_rows(mask),
            mine_spots=place_mine_spots(rng, mask, pairs),
        )

    rng = np.random.default_rng(seed)
    mask = np.zeros((GRID_SIZE, GRID_SIZE), dtype=bool)
    return GeneratedMap(seed=seed, rows=mask_to_rows(mask), mine_spots=place_mine_spots(rng, mask, 3))


def initial_snapshot(arena: GeneratedMap, starting_gold: int = 10) -> TurnSnapshot:
    """Build the first-turn input for a freshly generated arena."""
    (my_x, my_y), (enemy_x, enemy_y) = arena.headquarters
    return TurnSnapshot(
        my_gold=starting_gold,
        my_income=1,
        enemy_gold=starting_gold,
        enemy_income=1,
        rows=list(arena.rows),
        buildings=[
            (ME, BuildingType.HQ.value, my_x, my_y),
            (OPPONENT, BuildingType.HQ.value, enemy_x, enemy_y),
        ],
        units=[],
    )
