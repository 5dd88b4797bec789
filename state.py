"""
Board model for the 12x12 territory game.

GameState owns the tile grid, buildings, mine spots and both players'
ledgers. It is rebuilt (tiles, buildings) or reconciled (units, by id)
from every turn snapshot, then mutated in place by the strategy engine
while it plans, so later decisions of the same turn see committed actions.
"""

from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

import numpy as np

from map_gen import a_star_from_any, get_valid_neighbors, is_valid_position
from models import (
    GRID_SIZE, ME, OPPONENT, Building, BuildingType, MineSpot, Player,
    Position, SnapshotError, Tile, TileState, TurnSnapshot, Unit,
)

CONFIG_PATH = os.path.join(os.path.dirname(__file__), 'config.json')

DEFAULT_CONFIG: Dict[str, Any] = {
    'early_phase_turns': 6,
    'max_explorers': 7,
    'explorer_count': 1,
    'engagement_range': 6,
    'choke_walk_steps': 5,
    'kill_path_steps': 6,
    'tower_min_income': 5,
    'level2_min_income': 5,
    'level3_min_gold': 50,
    'level3_min_income': 35,
    'early_mine_min_units': 3,
}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load tunables from config.json, falling back to defaults.

    Values present in the file override DEFAULT_CONFIG; a missing or
    invalid file leaves the defaults untouched.
    """
    config = dict(DEFAULT_CONFIG)
    try:
        with open(path or CONFIG_PATH, 'r') as f:
            config.update(json.load(f))
    except (FileNotFoundError, json.JSONDecodeError):
        pass
    return config


@dataclass
class GameState:
    """
    Complete board snapshot plus the in-turn planning mutations.

    tiles is indexed [y][x]. log collects structured events for the
    current turn only; it is cleared when a new snapshot is applied.
    """
    mine_spots: List[MineSpot] = field(default_factory=list)
    me: Player = field(default_factory=lambda: Player(owner=ME))
    enemy: Player = field(default_factory=lambda: Player(owner=OPPONENT))
    tiles: List[List[Tile]] = field(default_factory=list)
    buildings: List[Building] = field(default_factory=list)
    turn: int = 0
    phase: str = 'early'
    log: List[Dict[str, Any]] = field(default_factory=list)

    # --- lookups ---

    def tile_at(self, position: Position) -> Tile:
        """Get the tile at a position; off-grid access is a programming error."""
        if not is_valid_position(position):
            raise IndexError(f"Position {position} is outside the grid")
        x, y = position
        return self.tiles[y][x]

    def get_tile(self, position: Position) -> Optional[Tile]:
        """Advisory lookup returning None off the grid or before the first snapshot."""
        if not is_valid_position(position) or not self.tiles:
            return None
        x, y = position
        return self.tiles[y][x]

    def all_tiles(self) -> Iterator[Tile]:
        for row in self.tiles:
            yield from row

    def adjacent_tiles(self, position: Position) -> List[Tile]:
        """Up to 4 in-bounds neighbours, VOID included."""
        return [self.tile_at(p) for p in get_valid_neighbors(position)]

    def neighbors(self, position: Position) -> List[Tile]:
        """Up to 4 in-bounds, walkable neighbours."""
        return [t for t in self.adjacent_tiles(position) if t.state != TileState.VOID]

    def player(self, owner: int) -> Player:
        return self.me if owner == ME else self.enemy

    def all_units(self) -> List[Unit]:
        return self.me.units + self.enemy.units

    def any_unit_on(self, position: Position) -> bool:
        """Check both players' units; the single occupancy check used while planning."""
        return any(u.position == position for u in self.all_units())

    def unit_at(self, position: Position, owner: Optional[int] = None) -> Optional[Unit]:
        units = self.all_units() if owner is None else self.player(owner).units
        for unit in units:
            if unit.position == position:
                return unit
        return None

    def building_at(self, position: Position) -> Optional[Building]:
        for building in self.buildings:
            if building.position == position:
                return building
        return None

    def buildings_of(self, owner: int, building_type: BuildingType) -> List[Building]:
        return [b for b in self.buildings if b.owner == owner and b.type == building_type]

    def headquarters(self, owner: int) -> Building:
        """Each player has exactly one HQ for the whole game."""
        for building in self.buildings:
            if building.owner == owner and building.type == BuildingType.HQ:
                return building
        raise LookupError(f"No headquarters for owner {owner}")

    def find_path(self, start: Position, goal: Position, blocked: Iterable[Position] = ()) -> Optional[List[Tile]]:
        """Shortest walkable path from start to goal as tiles, start excluded."""
        return self.find_path_from_any([start], goal, blocked)

    def find_path_from_any(self, starts: Iterable[Position], goal: Position,
                           blocked: Iterable[Position] = ()) -> Optional[List[Tile]]:
        """Shortest walkable path to goal from the nearest of several starts."""
        path = a_star_from_any(
            starts, goal,
            lambda p: self.tile_at(p).state != TileState.VOID,
            blocked,
        )
        if path is None:
            return None
        return [self.tile_at(p) for p in path]

    # --- mutation ---

    def apply_snapshot(self, snapshot: TurnSnapshot) -> None:
        """
        Replace tiles and buildings, reconcile units by id.

        Units missing from the snapshot are dropped (this also discards the
        unconfirmed units queued last turn); known ids are updated and marked
        ready; unknown ids are inserted as ready units.

        A rejected snapshot leaves the state untouched.
        """
        if len(snapshot.rows) != GRID_SIZE or any(len(row) != GRID_SIZE for row in snapshot.rows):
            raise SnapshotError(f"Expected {GRID_SIZE} rows of {GRID_SIZE} tiles")

        tiles = [
            [Tile((x, y), TileState.from_code(code)) for x, code in enumerate(row)]
            for y, row in enumerate(snapshot.rows)
        ]
        buildings = [
            Building((x, y), BuildingType.from_code(type_code), ME if owner == ME else OPPONENT)
            for owner, type_code, x, y in snapshot.buildings
        ]

        self.turn += 1
        self.log = []

        self.me.gold = snapshot.my_gold
        self.me.income = snapshot.my_income
        self.enemy.gold = snapshot.enemy_gold
        self.enemy.income = snapshot.enemy_income

        self.tiles = tiles
        self.buildings = buildings

        seen_ids = set()
        for owner, unit_id, level, x, y in snapshot.units:
            player = self.player(ME if owner == ME else OPPONENT)
            seen_ids.add(unit_id)
            unit = player.get_unit_by_id(unit_id)
            if unit is not None:
                unit.level = level
                unit.position = (x, y)
                unit.ready = True
            else:
                player.units.append(Unit(unit_id, level, (x, y), ready=True, owner=player.owner))

        self.me.units = [u for u in self.me.units if u.id in seen_ids]
        self.enemy.units = [u for u in self.enemy.units if u.id in seen_ids]

    def kill_unit(self, unit: Unit) -> None:
        """Drop a unit deduced dead while simulating an attack."""
        units = self.player(unit.owner).units
        if unit in units:
            units.remove(unit)

    def end_turn(self) -> None:
        """Clear per-turn relations that must not leak into the next turn."""
        for spot in self.mine_spots:
            spot.targeted_by = None

    # --- views ---

    def as_array(self) -> np.ndarray:
        """Tile codes as a [y, x] character array."""
        return np.array([[t.state.value for t in row] for row in self.tiles])

    def territory_counts(self) -> Dict[str, int]:
        grid = self.as_array()
        return {state.name.lower(): int(np.count_nonzero(grid == state.value)) for state in TileState}

    def summary(self) -> Dict[str, Any]:
        """Serializable view of the board for API responses."""
        return {
            'turn': self.turn,
            'phase': self.phase,
            'players': [
                {
                    'owner': player.owner,
                    'gold': player.gold,
                    'income': player.income,
                    'units': [
                        {'id': u.id, 'level': u.level, 'x': u.position[0], 'y': u.position[1], 'ready': u.ready}
                        for u in player.units
                    ],
                }
                for player in (self.me, self.enemy)
            ],
            'buildings': [
                {'owner': b.owner, 'type': b.type.name, 'x': b.position[0], 'y': b.position[1]}
                for b in self.buildings
            ],
            'rows': [''.join(t.state.value for t in row) for row in self.tiles],
            'territory': self.territory_counts() if self.tiles else {},
        }


def log_event(game_state: GameState, event: str, **kwargs) -> None:
    """
    Add an event to the game state log.

    Args:
        game_state: Current game state
        event: Description of the event
        **kwargs: Additional event data to include
    """
    log_entry = {
        'turn': game_state.turn,
        'phase': game_state.phase,
        'event': event,
        **kwargs
    }
    game_state.log.append(log_entry)


def create_game(mine_spots: Iterable[Position]) -> GameState:
    """Create an empty game state from the mine spot list sent at startup."""
    return GameState(mine_spots=[MineSpot(tuple(p)) for p in mine_spots])
