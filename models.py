# Models for the 12x12 territory game: tiles, units, buildings and ledgers

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Optional, Dict

GRID_SIZE = 12

# Owner flags as sent by the referee
ME = 0
OPPONENT = 1

# Id carried by units queued this turn until the referee confirms them
UNCONFIRMED_UNIT_ID = -1

TRAIN_COST: Dict[int, int] = {1: 10, 2: 20, 3: 30}
UPKEEP: Dict[int, int] = {1: 1, 2: 4, 3: 20}
TOWER_COST = 15
MINE_BASE_COST = 20
MINE_COST_STEP = 4
MINE_INCOME = 4

Position = Tuple[int, int]


def beats(level: int, enemy_level: int) -> bool:
    """A unit destroys strictly weaker units; level 3 also destroys level 3."""
    return level == 3 or enemy_level < level


class SnapshotError(ValueError):
    """Raised when the turn input holds a code the engine cannot interpret."""
    pass


class TileState(Enum):
    VOID = '#'
    NEUTRAL = '.'
    ALLY_ACTIVE = 'O'
    ALLY_INACTIVE = 'o'
    ENEMY_ACTIVE = 'X'
    ENEMY_INACTIVE = 'x'

    @classmethod
    def from_code(cls, code: str) -> 'TileState':
        try:
            return cls(code)
        except ValueError:
            raise SnapshotError(f"Unknown tile code: {code!r}")

    @property
    def is_ally(self) -> bool:
        return self in (TileState.ALLY_ACTIVE, TileState.ALLY_INACTIVE)

    @property
    def is_enemy(self) -> bool:
        return self in (TileState.ENEMY_ACTIVE, TileState.ENEMY_INACTIVE)


class BuildingType(Enum):
    HQ = 0
    MINE = 1
    TOWER = 2

    @classmethod
    def from_code(cls, code: int) -> 'BuildingType':
        try:
            return cls(code)
        except ValueError:
            raise SnapshotError(f"Unknown building type: {code!r}")


@dataclass
class Tile:
    """A grid cell. The state is authoritative per turn but may be optimistically updated while planning."""
    position: Position
    state: TileState

    @property
    def x(self) -> int:
        return self.position[0]

    @property
    def y(self) -> int:
        return self.position[1]


@dataclass
class Unit:
    """
    A unit owned by exactly one player.

    Units trained during the current turn carry UNCONFIRMED_UNIT_ID and are
    not ready; the next snapshot either confirms them under a real id or
    drops them.
    """
    id: int
    level: int
    position: Position
    ready: bool = False
    owner: int = ME


@dataclass
class Building:
    position: Position
    type: BuildingType
    owner: int


@dataclass
class MineSpot:
    """A tile where a mine may be built. targeted_by holds the id of the explorer heading there this turn."""
    position: Position
    targeted_by: Optional[int] = None


@dataclass
class Player:
    """Gold/income ledger and unit roster of one side."""
    owner: int
    gold: int = 0
    income: int = 0
    units: List[Unit] = field(default_factory=list)

    def get_unit_by_id(self, unit_id: int) -> Optional[Unit]:
        """Get a unit by its id."""
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        return None

    def units_of_level(self, level: int, ready_only: bool = True) -> List[Unit]:
        return [u for u in self.units if u.level == level and (u.ready or not ready_only)]

    def can_afford(self, cost: int, min_income: Optional[int] = None) -> bool:
        """Check gold against a cost and, optionally, income against a floor."""
        if self.gold < cost:
            return False
        if min_income is not None and self.income < min_income:
            return False
        return True

    def spend(self, gold: int, income: int = 0) -> None:
        """Commit a spend against the live ledger."""
        self.gold -= gold
        self.income -= income


@dataclass
class TurnSnapshot:
    """Raw per-turn input, from my point of view."""
    my_gold: int
    my_income: int
    enemy_gold: int
    enemy_income: int
    rows: List[str]
    buildings: List[Tuple[int, int, int, int]] = field(default_factory=list)  # (owner, type, x, y)
    units: List[Tuple[int, int, int, int, int]] = field(default_factory=list)  # (owner, id, level, x, y)
