"""
Tactical analyzers: pure queries over a GameState.

Every function here reads the board without mutating it and returns a
ranked candidate list, a single candidate, or None. An empty result always
means "skip this decision"; nothing in this module raises on an empty
board region.
"""

from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from map_gen import manhattan_distance, square_distance
from models import (
    ME, OPPONENT, TRAIN_COST, BuildingType, MineSpot, Position, Tile,
    TileState, Unit, beats,
)
from state import GameState


@dataclass(frozen=True)
class CorridorSegment:
    """Empty corridor tiles walked in order, and the enemy units cut off if any of them is seized."""
    tiles: Tuple[Position, ...]
    units: Tuple[Unit, ...]


@dataclass(frozen=True)
class KillPath:
    """
    A capture plan against an enemy corridor.

    path lists the tiles to train on, in order, ending with the cut tile.
    Seizing the cut tile disconnects every unit in killed from its base.
    """
    cut: Position
    path: Tuple[Position, ...]
    killed: Tuple[Unit, ...]
    distance: int
    cost: int

    @property
    def units_killed(self) -> int:
        return len(self.killed)

    @property
    def efficiency(self) -> float:
        """Units killed per gold spent."""
        return self.units_killed / self.cost if self.cost else float('inf')


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_protected_by_enemy_tower(state: GameState, position: Position) -> bool:
    """True on an enemy tower and on enemy active tiles right next to one."""
    for tower in state.buildings_of(OPPONENT, BuildingType.TOWER):
        if tower.position == position:
            return True
        if manhattan_distance(tower.position, position) == 1 and state.tile_at(position).state == TileState.ENEMY_ACTIVE:
            return True
    return False


def holds_own_building(state: GameState, position: Position) -> bool:
    building = state.building_at(position)
    return building is not None and building.owner == ME


def active_neighbors(state: GameState, position: Position, tile_state: TileState) -> List[Tile]:
    return [t for t in state.neighbors(position) if t.state == tile_state]


def is_guarded(state: GameState, position: Position) -> bool:
    """A tile of mine is guarded when one of my units stands on it or one of my towers covers it."""
    if state.unit_at(position, ME) is not None:
        return True
    return any(manhattan_distance(t.position, position) <= 1 for t in state.buildings_of(ME, BuildingType.TOWER))


def tiles_next_to_territory(state: GameState) -> List[Tile]:
    """Distinct walkable tiles adjacent to my active territory, in discovery order."""
    seen: Set[Position] = set()
    result = []
    for tile in state.all_tiles():
        if tile.state != TileState.ALLY_ACTIVE:
            continue
        for neighbor in state.neighbors(tile.position):
            if neighbor.position not in seen:
                seen.add(neighbor.position)
                result.append(neighbor)
    return result


# ---------------------------------------------------------------------------
# Training, mines and towers
# ---------------------------------------------------------------------------


def frontier_tiles(state: GameState, target: Position, level: int = 1) -> List[Tile]:
    """
    Tiles where a unit of the given level can be trained without a fight.

    Ranked by squared distance to target (ascending); the sort is stable
    so equal distances keep discovery order.
    """
    candidates = [
        tile for tile in tiles_next_to_territory(state)
        if not state.any_unit_on(tile.position)
        and not holds_own_building(state, tile.position)
        and (level == 3 or not is_protected_by_enemy_tower(state, tile.position))
    ]
    return sorted(candidates, key=lambda t: square_distance(t.position, target))


def contested_tiles(state: GameState, target: Position, level: int) -> List[Tile]:
    """Tiles next to my territory holding an enemy unit a newly trained unit of this level would destroy."""
    candidates = []
    for tile in tiles_next_to_territory(state):
        enemy_unit = state.unit_at(tile.position, OPPONENT)
        if enemy_unit is None or not beats(level, enemy_unit.level):
            continue
        if level < 3 and is_protected_by_enemy_tower(state, tile.position):
            continue
        candidates.append(tile)
    return sorted(candidates, key=lambda t: square_distance(t.position, target))


def available_mine_spots(state: GameState) -> List[MineSpot]:
    """Mine spots on my active territory that are free of units and buildings, nearest my HQ first."""
    my_hq = state.headquarters(ME).position
    spots = [
        spot for spot in state.mine_spots
        if state.tile_at(spot.position).state == TileState.ALLY_ACTIVE
        and not state.any_unit_on(spot.position)
        and state.building_at(spot.position) is None
    ]
    return sorted(spots, key=lambda s: square_distance(s.position, my_hq))


def tower_sites(state: GameState, target: Position, aggressive: bool = False) -> List[Tile]:
    """
    Active tiles of mine where a new tower adds coverage.

    Tiles within one tile (diagonals included) of an existing tower of mine
    are skipped. The aggressive variant only keeps front-line tiles touching
    active enemy ground. Ranked by Manhattan distance to target.
    """
    covered: Set[Position] = set()
    for tower in state.buildings_of(ME, BuildingType.TOWER):
        tx, ty = tower.position
        covered.update((tx + dx, ty + dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1))

    candidates = []
    for tile in state.all_tiles():
        if tile.state != TileState.ALLY_ACTIVE or tile.position in covered:
            continue
        if state.any_unit_on(tile.position) or state.building_at(tile.position) is not None:
            continue
        if aggressive and not active_neighbors(state, tile.position, TileState.ENEMY_ACTIVE):
            continue
        candidates.append(tile)
    return sorted(candidates, key=lambda t: manhattan_distance(t.position, target))


# ---------------------------------------------------------------------------
# Exploration
# ---------------------------------------------------------------------------


def closest_neutral_mine(state: GameState, unit: Unit) -> Optional[MineSpot]:
    """Nearest neutral mine spot that nobody stands on and no other explorer targets."""
    spots = [
        spot for spot in state.mine_spots
        if state.tile_at(spot.position).state == TileState.NEUTRAL
        and not state.any_unit_on(spot.position)
        and spot.targeted_by is None
    ]
    if not spots:
        return None
    return min(spots, key=lambda s: (manhattan_distance(s.position, unit.position), s.position))


def closest_unclaimed_tile(state: GameState, unit: Unit) -> Optional[Tile]:
    """
    Nearest walkable tile that is not already active territory of mine.

    Among the nearest, prefer the tile farthest from my other units so
    explorers spread out.
    """
    candidates = [
        tile for tile in state.all_tiles()
        if tile.state not in (TileState.ALLY_ACTIVE, TileState.VOID)
        and not state.any_unit_on(tile.position)
        and not is_protected_by_enemy_tower(state, tile.position)
    ]
    if not candidates:
        return None

    nearest = min(manhattan_distance(t.position, unit.position) for t in candidates)
    closest = [t for t in candidates if manhattan_distance(t.position, unit.position) == nearest]
    others = [u for u in state.me.units if u is not unit]
    return max(
        closest,
        key=lambda t: (sum(manhattan_distance(t.position, u.position) for u in others), tuple(-c for c in t.position)),
    )


def claimable_neighbors(state: GameState, unit: Unit, target: Position) -> List[Tile]:
    """Adjacent tiles a level-1 unit can safely claim, nearest the target first."""
    candidates = [
        tile for tile in state.neighbors(unit.position)
        if tile.state != TileState.ALLY_ACTIVE
        and not state.any_unit_on(tile.position)
        and not holds_own_building(state, tile.position)
        and not is_protected_by_enemy_tower(state, tile.position)
    ]
    return sorted(candidates, key=lambda t: (square_distance(t.position, target), t.position))


# ---------------------------------------------------------------------------
# Paths over enemy ground
# ---------------------------------------------------------------------------


def training_chain(state: GameState, goal: Position) -> Optional[List[Tile]]:
    """
    Tiles to train level-1 units on, in order, to extend my territory to goal.

    The search starts from every active tile of mine at once, so the chain
    is the shortest one out of my territory. It avoids occupied or
    tower-protected ground outside my territory. Returns None when no
    chain exists.
    """
    territory = [t.position for t in state.all_tiles() if t.state == TileState.ALLY_ACTIVE]
    if not territory:
        return None
    if state.tile_at(goal).state == TileState.ALLY_ACTIVE:
        return []

    blocked = [
        tile.position for tile in state.all_tiles()
        if tile.state != TileState.ALLY_ACTIVE
        and (state.any_unit_on(tile.position)
             or holds_own_building(state, tile.position)
             or is_protected_by_enemy_tower(state, tile.position))
    ]
    path = state.find_path_from_any(territory, goal, blocked)
    if path is None or (path and path[-1].position != goal):
        return None
    return [t for t in path if t.state != TileState.ALLY_ACTIVE]


def lethal_path(state: GameState) -> Optional[List[Tile]]:
    """Cheapest level-1 chain onto the enemy HQ, or None."""
    return training_chain(state, state.headquarters(OPPONENT).position)


def find_choke_point(state: GameState, unit: Unit, max_steps: int = 5) -> Optional[Tile]:
    """
    Find the tile where my territory behind an exposed unit can be cut.

    The unit must stand where exactly one active neighbour of mine connects
    it to the rest of my territory. The walk follows that single-tile-wide
    corridor without stepping back, and returns the first unguarded corridor
    tile. It gives up (None) when the corridor ends, widens into more than
    two branches, revisits a tile, or runs out of steps.
    """
    if len(active_neighbors(state, unit.position, TileState.ALLY_ACTIVE)) != 1:
        return None

    previous: Optional[Position] = None
    current = unit.position
    visited = {current}

    for _ in range(max_steps):
        forward = [t for t in active_neighbors(state, current, TileState.ALLY_ACTIVE) if t.position != previous]
        if len(forward) != 1:
            return None
        step = forward[0]
        if step.position in visited:
            return None
        if len(active_neighbors(state, step.position, TileState.ALLY_ACTIVE)) > 2:
            return None
        if not is_guarded(state, step.position):
            return step
        visited.add(step.position)
        previous, current = current, step.position

    return None


def walk_enemy_corridor(state: GameState, start_unit: Unit, max_steps: int = 6) -> List[CorridorSegment]:
    """
    Walk an enemy corridor from the unit at its tip towards its base.

    Empty corridor tiles accumulate into the current segment. Meeting
    another enemy unit closes the segment; that unit joins the kill set
    carried by every following segment. The walk stops when the corridor
    widens, reaches the enemy HQ, revisits a tile or runs out of steps.
    """
    segments: List[CorridorSegment] = []
    killed: List[Unit] = [start_unit]
    tiles: List[Position] = []
    enemy_hq = state.headquarters(OPPONENT).position

    previous: Optional[Position] = None
    current = start_unit.position
    visited = {current}

    for _ in range(max_steps):
        forward = [t for t in active_neighbors(state, current, TileState.ENEMY_ACTIVE) if t.position != previous]
        if len(forward) != 1:
            break
        step = forward[0]
        if step.position in visited or step.position == enemy_hq:
            break
        if len(active_neighbors(state, step.position, TileState.ENEMY_ACTIVE)) > 2:
            break
        visited.add(step.position)

        occupant = state.unit_at(step.position, OPPONENT)
        if occupant is not None:
            segments.append(CorridorSegment(tuple(tiles), tuple(killed)))
            killed = killed + [occupant]
            tiles = []
        else:
            tiles.append(step.position)
        previous, current = current, step.position

    segments.append(CorridorSegment(tuple(tiles), tuple(killed)))
    return segments


def find_kill_paths(state: GameState, max_steps: int = 6) -> List[KillPath]:
    """
    Rank attacks that strand enemy units by cutting their corridor.

    One kill path per enemy unit sitting at a corridor tip (exactly one
    active enemy neighbour). The deepest segment holding a reachable,
    capturable tile provides the cut; among its tiles the cheapest to reach
    wins. Results are ordered by units killed per gold, best first.
    """
    kill_paths = []
    for unit in state.enemy.units:
        if state.tile_at(unit.position).state != TileState.ENEMY_ACTIVE:
            continue
        if len(active_neighbors(state, unit.position, TileState.ENEMY_ACTIVE)) != 1:
            continue

        for segment in reversed(walk_enemy_corridor(state, unit, max_steps)):
            best = None
            for position in segment.tiles:
                if is_protected_by_enemy_tower(state, position):
                    continue
                chain = training_chain(state, position)
                if not chain:
                    continue
                if best is None or len(chain) < len(best[1]):
                    best = (position, chain)
            if best is not None:
                cut, chain = best
                kill_paths.append(KillPath(
                    cut=cut,
                    path=tuple(t.position for t in chain),
                    killed=segment.units,
                    distance=len(chain),
                    cost=len(chain) * TRAIN_COST[1],
                ))
                break

    return sorted(kill_paths, key=lambda k: (-k.efficiency, k.cost, k.cut))
