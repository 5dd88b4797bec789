from enum import Enum
from typing import Optional, List, Dict, Any

from models import (
    ME, MINE_BASE_COST, MINE_COST_STEP, MINE_INCOME, OPPONENT, TOWER_COST,
    TRAIN_COST, UNCONFIRMED_UNIT_ID, UPKEEP, Building, BuildingType,
    MineSpot, Position, Tile, TileState, Unit, beats,
)
from state import GameState, log_event
from tactics import is_protected_by_enemy_tower


class OrderType(Enum):
    MOVE = "MOVE"
    TRAIN = "TRAIN"
    BUILD_MINE = "BUILD MINE"
    BUILD_TOWER = "BUILD TOWER"
    WAIT = "WAIT"


class Order:
    def __init__(self, order_type: OrderType, position: Optional[Position] = None, unit_id: Optional[int] = None, level: Optional[int] = None):
        """Initialize an order. MOVE needs a unit id, TRAIN a level; WAIT takes nothing."""
        self.order_type = order_type
        self.position = position
        self.unit_id = unit_id
        self.level = level

    def to_command(self) -> str:
        if self.order_type == OrderType.WAIT:
            return "WAIT"
        x, y = self.position
        if self.order_type == OrderType.MOVE:
            return f"MOVE {self.unit_id} {x} {y}"
        if self.order_type == OrderType.TRAIN:
            return f"TRAIN {self.level} {x} {y}"
        return f"{self.order_type.value} {x} {y}"

    def __repr__(self) -> str:
        return f"Order({self.to_command()})"


class OrderValidationError(Exception):
    """Exception raised when an order fails validation."""
    pass


def mine_cost(game_state: GameState) -> int:
    """Each mine I own makes the next one more expensive."""
    return MINE_BASE_COST + MINE_COST_STEP * len(game_state.buildings_of(ME, BuildingType.MINE))


def validate_order(order: Order, game_state: GameState) -> bool:
    """Validate an order against the live ledger and the planned board."""
    player = game_state.me

    if order.order_type == OrderType.WAIT:
        return True

    if order.position is None:
        raise OrderValidationError(f"{order.order_type.value} order requires a position")

    tile = game_state.get_tile(order.position)
    if tile is None:
        raise OrderValidationError(f"Target {order.position} is outside the grid")
    if tile.state == TileState.VOID:
        raise OrderValidationError(f"Target {order.position} is impassable")

    if order.order_type == OrderType.TRAIN:
        if order.level not in TRAIN_COST:
            raise OrderValidationError(f"Invalid unit level: {order.level}")

        cost = TRAIN_COST[order.level]
        if player.gold < cost:
            raise OrderValidationError(f"Insufficient gold to train level {order.level} (has {player.gold}, needs {cost})")

        touches_territory = tile.state == TileState.ALLY_ACTIVE or any(
            t.state == TileState.ALLY_ACTIVE for t in game_state.neighbors(order.position)
        )
        if not touches_territory:
            raise OrderValidationError(f"Target {order.position} is not next to active territory")

        if game_state.unit_at(order.position, ME) is not None:
            raise OrderValidationError(f"Target {order.position} already holds one of my units")

        building = game_state.building_at(order.position)
        if building is not None and building.owner == ME:
            raise OrderValidationError(f"Target {order.position} holds one of my buildings")

        enemy_unit = game_state.unit_at(order.position, OPPONENT)
        if enemy_unit is not None and not beats(order.level, enemy_unit.level):
            raise OrderValidationError(f"Level {order.level} cannot defeat level {enemy_unit.level} at {order.position}")

        if order.level < 3 and is_protected_by_enemy_tower(game_state, order.position):
            raise OrderValidationError(f"Target {order.position} is protected by an enemy tower")

    elif order.order_type in (OrderType.BUILD_MINE, OrderType.BUILD_TOWER):
        if order.order_type == OrderType.BUILD_MINE:
            cost = mine_cost(game_state)
            if not any(spot.position == order.position for spot in game_state.mine_spots):
                raise OrderValidationError(f"No mine spot at {order.position}")
        else:
            cost = TOWER_COST

        if player.gold < cost:
            raise OrderValidationError(f"Insufficient gold for {order.order_type.value} (has {player.gold}, needs {cost})")
        if tile.state != TileState.ALLY_ACTIVE:
            raise OrderValidationError(f"Cannot build on {order.position}: not active territory")
        if game_state.any_unit_on(order.position) or game_state.building_at(order.position) is not None:
            raise OrderValidationError(f"Cannot build on {order.position}: tile is occupied")

    elif order.order_type == OrderType.MOVE:
        unit = game_state.me.get_unit_by_id(order.unit_id)
        if unit is None or not unit.ready:
            raise OrderValidationError(f"Unit {order.unit_id} cannot move this turn")

    return True


# ---------------------------------------------------------------------------
# Commits: validate, then apply the action to the board and ledger at once
# ---------------------------------------------------------------------------


def capture_tile(game_state: GameState, tile: Tile) -> None:
    """Take a tile: enemy units on it die, enemy mines and towers on it fall."""
    enemy_unit = game_state.unit_at(tile.position, OPPONENT)
    if enemy_unit is not None:
        game_state.kill_unit(enemy_unit)
        log_event(game_state, f"Enemy unit {enemy_unit.id} destroyed at {tile.position}", unit_id=enemy_unit.id)

    building = game_state.building_at(tile.position)
    if building is not None and building.owner == OPPONENT and building.type != BuildingType.HQ:
        game_state.buildings.remove(building)
        log_event(game_state, f"Enemy {building.type.name.lower()} destroyed at {tile.position}")

    tile.state = TileState.ALLY_ACTIVE


def train_unit(game_state: GameState, level: int, tile: Tile) -> Order:
    """
    Commit a TRAIN order.

    Gold drops by the training cost and income by the unit's upkeep; the
    unit is added unconfirmed and the tile becomes active territory. An
    enemy unit standing there is destroyed.
    """
    order = Order(OrderType.TRAIN, position=tile.position, level=level)
    validate_order(order, game_state)

    capture_tile(game_state, tile)
    game_state.me.spend(TRAIN_COST[level], UPKEEP[level])
    game_state.me.units.append(Unit(UNCONFIRMED_UNIT_ID, level, tile.position, ready=False, owner=ME))

    log_event(game_state, f"Train level {level} at {tile.position}",
              gold=game_state.me.gold, income=game_state.me.income)
    return order


def build_mine(game_state: GameState, spot: MineSpot) -> Order:
    """Commit a BUILD MINE order: pay the current mine cost, gain income."""
    order = Order(OrderType.BUILD_MINE, position=spot.position)
    validate_order(order, game_state)

    cost = mine_cost(game_state)
    game_state.me.spend(cost, -MINE_INCOME)
    game_state.buildings.append(Building(spot.position, BuildingType.MINE, ME))

    log_event(game_state, f"Build mine at {spot.position} for {cost} gold",
              gold=game_state.me.gold, income=game_state.me.income)
    return order


def build_tower(game_state: GameState, tile: Tile) -> Order:
    """Commit a BUILD TOWER order."""
    order = Order(OrderType.BUILD_TOWER, position=tile.position)
    validate_order(order, game_state)

    game_state.me.spend(TOWER_COST)
    game_state.buildings.append(Building(tile.position, BuildingType.TOWER, ME))

    log_event(game_state, f"Build tower at {tile.position}", gold=game_state.me.gold)
    return order


def move_unit(game_state: GameState, unit: Unit, destination: Position, step: Optional[Tile] = None) -> Order:
    """
    Commit a MOVE order.

    The referee walks the unit one tile towards destination. When the first
    step is known the unit is moved there right away and the tile marked
    active, so later decisions this turn do not target it again.
    """
    order = Order(OrderType.MOVE, position=destination, unit_id=unit.id)
    validate_order(order, game_state)

    if step is not None:
        capture_tile(game_state, step)
        unit.position = step.position

    unit.ready = False
    log_event(game_state, f"Move unit {unit.id} towards {destination}", unit_id=unit.id)
    return order


def format_orders(orders: List[Order]) -> str:
    """Render orders as the one-line protocol command, always ending with a single WAIT."""
    commands = [o.to_command() for o in orders if o.order_type != OrderType.WAIT]
    commands.append("WAIT")
    return "".join(f"{command};" for command in commands)


def get_order_summary(order: Order) -> Dict[str, Any]:
    """Get a summary of an order for API responses."""
    summary: Dict[str, Any] = {
        "order_type": order.order_type.value,
        "command": order.to_command(),
    }

    if order.position is not None:
        summary["x"], summary["y"] = order.position

    if order.unit_id is not None:
        summary["unit_id"] = order.unit_id

    if order.level is not None:
        summary["level"] = order.level

    return summary
