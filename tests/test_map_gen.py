import pytest

from map_gen import (
    HQ_POSITIONS, a_star_from_any, a_star_pathfinding, generate_map, get_neighbors,
    get_valid_neighbors, initial_snapshot, manhattan_distance, square_distance,
)
from models import GRID_SIZE


def open_grid(_position):
    return True


class TestGeometry:
    def test_neighbor_order(self):
        assert get_neighbors(5, 5) == [(5, 4), (5, 6), (4, 5), (6, 5)]

    def test_valid_neighbors_at_corner(self):
        assert get_valid_neighbors((0, 0)) == [(0, 1), (1, 0)]
        assert get_valid_neighbors((11, 11)) == [(11, 10), (10, 11)]

    def test_distances(self):
        assert manhattan_distance((1, 2), (4, 6)) == 7
        assert square_distance((1, 2), (4, 6)) == 25


class TestPathfinding:
    def test_start_equals_goal(self):
        assert a_star_pathfinding((3, 3), (3, 3), open_grid) == []

    def test_path_is_shortest_on_open_grid(self):
        path = a_star_pathfinding((0, 0), (5, 7), open_grid)
        assert len(path) == manhattan_distance((0, 0), (5, 7))
        assert path[-1] == (5, 7)
        assert (0, 0) not in path

    def test_path_steps_are_adjacent(self):
        path = a_star_pathfinding((2, 9), (8, 1), open_grid)
        previous = (2, 9)
        for step in path:
            assert manhattan_distance(previous, step) == 1
            previous = step

    def test_detour_around_wall(self):
        wall = {(5, y) for y in range(GRID_SIZE - 1)}
        path = a_star_pathfinding((0, 0), (11, 0), lambda p: p not in wall)
        assert len(path) == 33
        assert not wall.intersection(path)

    def test_blocked_positions_are_avoided(self):
        blocked = [(1, 0), (0, 1)]
        assert a_star_pathfinding((0, 0), (3, 3), open_grid, blocked) is None

    def test_unreachable_goal(self):
        walls = {(4, 5), (6, 5), (5, 4), (5, 6)}
        assert a_star_pathfinding((0, 0), (5, 5), lambda p: p not in walls) is None

    def test_blocked_or_invalid_goal(self):
        assert a_star_pathfinding((0, 0), (3, 3), open_grid, [(3, 3)]) is None
        assert a_star_pathfinding((0, 0), (12, 0), open_grid) is None

    def test_ties_are_deterministic(self):
        # Equal f and h at the first step: the lower (x, y) is expanded first
        assert a_star_pathfinding((0, 0), (1, 1), open_grid) == [(0, 1), (1, 1)]
        assert a_star_pathfinding((4, 7), (9, 2), open_grid) == a_star_pathfinding((4, 7), (9, 2), open_grid)

    def test_several_starts_use_the_nearest(self):
        wall = {(x, 3) for x in range(1, GRID_SIZE - 1)}
        path = a_star_from_any([(6, 2), (0, 6)], (6, 6), lambda p: p not in wall)
        assert path == [(1, 6), (2, 6), (3, 6), (4, 6), (5, 6), (6, 6)]

    def test_several_starts_edge_cases(self):
        assert a_star_from_any([(0, 0), (3, 3)], (3, 3), open_grid) == []
        assert a_star_from_any([], (3, 3), open_grid) is None


class TestGenerateMap:
    @pytest.mark.parametrize("seed", [0, 7, 42, 1234])
    def test_shape_and_hqs(self, seed):
        arena = generate_map(seed)
        assert len(arena.rows) == GRID_SIZE
        assert all(len(row) == GRID_SIZE for row in arena.rows)
        assert arena.rows[0][0] == "O"
        assert arena.rows[11][11] == "X"

    @pytest.mark.parametrize("seed", [0, 7, 42, 1234])
    def test_void_is_point_symmetric(self, seed):
        rows = generate_map(seed).rows
        for y in range(GRID_SIZE):
            for x in range(GRID_SIZE):
                assert (rows[y][x] == "#") == (rows[GRID_SIZE - 1 - y][GRID_SIZE - 1 - x] == "#")

    @pytest.mark.parametrize("seed", [0, 7, 42, 1234])
    def test_hqs_are_connected(self, seed):
        rows = generate_map(seed).rows
        path = a_star_pathfinding(HQ_POSITIONS[0], HQ_POSITIONS[1], lambda p: rows[p[1]][p[0]] != "#")
        assert path is not None

    @pytest.mark.parametrize("seed", [0, 7, 42, 1234])
    def test_mine_spots_mirrored_and_open(self, seed):
        arena = generate_map(seed)
        spots = arena.mine_spots
        assert len(spots) % 2 == 0
        for (x, y), (mx, my) in zip(spots[::2], spots[1::2]):
            assert (mx, my) == (GRID_SIZE - 1 - x, GRID_SIZE - 1 - y)
        for x, y in spots:
            assert arena.rows[y][x] == "."
            assert (x, y) not in HQ_POSITIONS

    def test_same_seed_same_map(self):
        first = generate_map(99)
        second = generate_map(99)
        assert first.rows == second.rows
        assert first.mine_spots == second.mine_spots

    def test_full_void_ratio_falls_back_to_open_arena(self):
        arena = generate_map(5, void_ratio=1.0, max_attempts=2)
        assert "#" not in "".join(arena.rows)

    def test_initial_snapshot(self):
        arena = generate_map(3)
        snapshot = initial_snapshot(arena)
        assert snapshot.my_gold == 10
        assert snapshot.rows == arena.rows
        assert snapshot.buildings == [(0, 0, 0, 0), (1, 0, 11, 11)]
        assert snapshot.units == []
