"""
Strategy engine: the per-turn decision policies and the phase machine.

A turn runs the conditional policies that apply (in fixed priority order),
then the primary policy of the current phase. Every policy commits its
actions through orders.py, which updates the board and the gold/income
ledger at once, so each later decision in the same turn ranks candidates
against the real remaining budget and the planned board.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from map_gen import manhattan_distance
from models import (
    ME, OPPONENT, TOWER_COST, TRAIN_COST, BuildingType, Position,
    TileState, TurnSnapshot, Unit, beats,
)
from orders import Order, build_mine, build_tower, mine_cost, move_unit, train_unit
from state import GameState, create_game, load_config, log_event
from tactics import (
    available_mine_spots, claimable_neighbors, closest_neutral_mine,
    closest_unclaimed_tile, contested_tiles, find_choke_point,
    find_kill_paths, frontier_tiles, is_protected_by_enemy_tower,
    lethal_path, tower_sites,
)


class Phase(Enum):
    EARLY = "early"
    MAIN = "main"


# ---------------------------------------------------------------------------
# Shared moves
# ---------------------------------------------------------------------------


def blocked_for(game_state: GameState, unit: Unit) -> Set[Position]:
    """Tiles a unit cannot step on: my other units, enemies it cannot beat, tower cover below level 3."""
    blocked = {u.position for u in game_state.me.units if u is not unit}
    blocked.update(e.position for e in game_state.enemy.units if not beats(unit.level, e.level))
    if unit.level < 3:
        blocked.update(
            t.position for t in game_state.all_tiles()
            if is_protected_by_enemy_tower(game_state, t.position)
        )
    return blocked


def advance(game_state: GameState, unit: Unit, destination: Position) -> Optional[Order]:
    """
    Send a unit towards a destination.

    Returns None when the destination is unreachable. The first step is
    committed to the board only when the unit may legally stand there.
    """
    blocked = blocked_for(game_state, unit)
    path = game_state.find_path(unit.position, destination, blocked - {destination})
    if path is None:
        log_event(game_state, f"Unit {unit.id} cannot reach {destination}", unit_id=unit.id)
        return None
    if not path:
        return None

    step = path[0] if path[0].position not in blocked else None
    return move_unit(game_state, unit, destination, step)


def nearest_reachable_enemy(game_state: GameState, unit: Unit, max_range: int) -> Optional[Unit]:
    """Closest enemy within range that this unit destroys and can reach."""
    prey = sorted(
        (e for e in game_state.enemy.units
         if beats(unit.level, e.level) and manhattan_distance(e.position, unit.position) <= max_range),
        key=lambda e: (manhattan_distance(e.position, unit.position), e.position),
    )
    blocked = blocked_for(game_state, unit)
    for enemy in prey:
        if game_state.find_path(unit.position, enemy.position, blocked - {enemy.position}) is not None:
            return enemy
    return None


def hunt(game_state: GameState, hunters: Iterable[Unit], max_range: int) -> List[Order]:
    """Attack the nearest beatable enemy in range, otherwise march on the enemy HQ."""
    enemy_hq = game_state.headquarters(OPPONENT).position
    orders = []
    for hunter in sorted(hunters, key=lambda u: (manhattan_distance(u.position, enemy_hq), u.id)):
        target = nearest_reachable_enemy(game_state, hunter, max_range)
        destination = target.position if target is not None else enemy_hq
        order = advance(game_state, hunter, destination)
        if order is not None:
            orders.append(order)
    return orders


def conquer(game_state: GameState, units: Iterable[Unit]) -> List[Order]:
    """
    Level-1 behaviour: claim new ground nearest the enemy HQ.

    When no adjacent tile is safely claimable the unit advances on the
    nearest enemy mine if that is closer than the HQ, otherwise on the HQ.
    """
    enemy_hq = game_state.headquarters(OPPONENT).position
    enemy_mines = [b.position for b in game_state.buildings_of(OPPONENT, BuildingType.MINE)]
    orders = []

    for unit in sorted(units, key=lambda u: (manhattan_distance(u.position, enemy_hq), u.id)):
        options = claimable_neighbors(game_state, unit, enemy_hq)
        if options:
            orders.append(move_unit(game_state, unit, options[0].position, options[0]))
            continue

        destination = enemy_hq
        if enemy_mines:
            closest_mine = min(enemy_mines, key=lambda p: (manhattan_distance(p, unit.position), p))
            if manhattan_distance(closest_mine, unit.position) < manhattan_distance(enemy_hq, unit.position):
                destination = closest_mine
        order = advance(game_state, unit, destination)
        if order is not None:
            orders.append(order)
    return orders


def explore(game_state: GameState, unit: Unit) -> Optional[Order]:
    """Head for the nearest free neutral mine spot, else the nearest unclaimed tile, else the enemy HQ."""
    spot = closest_neutral_mine(game_state, unit)
    if spot is not None:
        spot.targeted_by = unit.id
        return advance(game_state, unit, spot.position)

    tile = closest_unclaimed_tile(game_state, unit)
    if tile is not None:
        return advance(game_state, unit, tile.position)
    return advance(game_state, unit, game_state.headquarters(OPPONENT).position)


def train_expansion(game_state: GameState, max_units: Optional[int] = None) -> List[Order]:
    """Train level-1 units on the frontier, nearest the enemy HQ first, while gold allows."""
    enemy_hq = game_state.headquarters(OPPONENT).position
    orders = []
    candidates = frontier_tiles(game_state, enemy_hq)
    while candidates and game_state.me.can_afford(TRAIN_COST[1]):
        if max_units is not None and len(game_state.me.units) >= max_units:
            break
        orders.append(train_unit(game_state, 1, candidates[0]))
        candidates = frontier_tiles(game_state, enemy_hq)
    return orders


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


class Strategy:
    """Base class for turn policies."""
    name: str = "base"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config if config is not None else load_config()

    def play(self, game_state: GameState) -> List[Order]:
        raise NotImplementedError


class OptionalStrategy(Strategy):
    """A policy that only runs on turns where its situation is present."""

    def is_applicable(self, game_state: GameState) -> bool:
        raise NotImplementedError


class StrategyConquer(Strategy):
    """Early phase: explore, grab mines, and spread level-1 units."""
    name = "conquer"

    def play(self, game_state: GameState) -> List[Order]:
        player = game_state.me
        orders = []

        spots = available_mine_spots(game_state)
        if (spots and len(player.units) >= self.config['early_mine_min_units']
                and player.can_afford(mine_cost(game_state))):
            orders.append(build_mine(game_state, spots[0]))

        for unit in sorted((u for u in player.units if u.ready), key=lambda u: u.id):
            order = explore(game_state, unit)
            if order is not None:
                orders.append(order)

        orders.extend(train_expansion(game_state, max_units=self.config['max_explorers']))
        return orders


class StrategyAttack(Strategy):
    """Main phase: fight, cut corridors, fortify, develop the economy, expand."""
    name = "attack"

    def play(self, game_state: GameState) -> List[Order]:
        config = self.config
        player = game_state.me
        enemy_hq = game_state.headquarters(OPPONENT).position
        orders: List[Order] = []

        level1 = sorted(player.units_of_level(1), key=lambda u: u.id)
        explorers = level1[:config['explorer_count']]
        attackers = level1[config['explorer_count']:]

        orders.extend(hunt(game_state, player.units_of_level(3), config['engagement_range']))
        orders.extend(hunt(game_state, player.units_of_level(2), config['engagement_range']))
        orders.extend(conquer(game_state, attackers))
        for explorer in explorers:
            order = explore(game_state, explorer)
            if order is not None:
                orders.append(order)

        orders.extend(self.strike_kill_paths(game_state))
        orders.extend(self.fortify(game_state, enemy_hq))

        candidates = contested_tiles(game_state, enemy_hq, level=2)
        while candidates and player.can_afford(TRAIN_COST[2], config['level2_min_income']):
            orders.append(train_unit(game_state, 2, candidates[0]))
            candidates = contested_tiles(game_state, enemy_hq, level=2)

        spots = available_mine_spots(game_state)
        if spots and player.can_afford(mine_cost(game_state)):
            orders.append(build_mine(game_state, spots[0]))

        candidates = contested_tiles(game_state, enemy_hq, level=3)
        if candidates and player.can_afford(max(TRAIN_COST[3], config['level3_min_gold']), config['level3_min_income']):
            orders.append(train_unit(game_state, 3, candidates[0]))

        orders.extend(train_expansion(game_state))
        return orders

    def strike_kill_paths(self, game_state: GameState) -> List[Order]:
        """Train along the most efficient affordable kill path until none is left."""
        orders = []
        while True:
            affordable = [k for k in find_kill_paths(game_state, self.config['kill_path_steps'])
                          if k.cost <= game_state.me.gold]
            if not affordable:
                return orders

            kill_path = affordable[0]
            log_event(game_state, f"Cutting corridor at {kill_path.cut}",
                      units_killed=kill_path.units_killed, cost=kill_path.cost)
            for position in kill_path.path:
                orders.append(train_unit(game_state, 1, game_state.tile_at(position)))
            for unit in kill_path.killed:
                game_state.kill_unit(unit)

    def fortify(self, game_state: GameState, enemy_hq: Position) -> List[Order]:
        """Towers on choke points behind exposed units, else one tower on the front line."""
        player = game_state.me
        min_income = self.config['tower_min_income']
        orders = []

        for unit in list(player.units):
            if not player.can_afford(TOWER_COST, min_income):
                return orders
            tile = find_choke_point(game_state, unit, self.config['choke_walk_steps'])
            if (tile is None or game_state.building_at(tile.position) is not None
                    or game_state.any_unit_on(tile.position)):
                continue
            orders.append(build_tower(game_state, tile))

        if not orders and player.can_afford(TOWER_COST, min_income):
            sites = tower_sites(game_state, enemy_hq, aggressive=True)
            if sites:
                orders.append(build_tower(game_state, sites[0]))
        return orders


class StrategyInstantKill(OptionalStrategy):
    """Win outright: a level-1 chain onto the enemy HQ costs no more than the gold I hold."""
    name = "instant_kill"

    def is_applicable(self, game_state: GameState) -> bool:
        chain = lethal_path(game_state)
        return bool(chain) and len(chain) * TRAIN_COST[1] <= game_state.me.gold

    def play(self, game_state: GameState) -> List[Order]:
        chain = lethal_path(game_state) or []
        log_event(game_state, f"Instant kill through {len(chain)} tiles")
        orders = []
        for tile in chain:
            if not game_state.me.can_afford(TRAIN_COST[1]):
                break
            orders.append(train_unit(game_state, 1, tile))
        return orders


class StrategyTowerDefense(OptionalStrategy):
    """
    Lethal exposure: an enemy unit is closer to my HQ than the enemy's
    gold and income could pay level-1 units for.
    """
    name = "tower_defense"

    def is_applicable(self, game_state: GameState) -> bool:
        my_hq = game_state.headquarters(ME).position
        reach = (game_state.enemy.gold + game_state.enemy.income) // TRAIN_COST[1]
        return any(manhattan_distance(u.position, my_hq) <= reach for u in game_state.enemy.units)

    def play(self, game_state: GameState) -> List[Order]:
        if not game_state.me.can_afford(TOWER_COST):
            return []
        sites = tower_sites(game_state, game_state.headquarters(ME).position)
        if not sites:
            return []
        log_event(game_state, "HQ exposed, building a defensive tower")
        return [build_tower(game_state, sites[0])]


class StrategyKillLevel3(OptionalStrategy):
    """Deal with enemy level-3 units touching my territory."""
    name = "kill_level3"

    def threats(self, game_state: GameState) -> List[Unit]:
        result = []
        for enemy_unit in game_state.enemy.units:
            if enemy_unit.level != 3:
                continue
            for tile in game_state.neighbors(enemy_unit.position):
                building = game_state.building_at(tile.position)
                if (tile.state == TileState.ALLY_ACTIVE
                        or game_state.unit_at(tile.position, ME) is not None
                        or (building is not None and building.owner == ME)):
                    result.append(enemy_unit)
                    break
        return result

    def is_applicable(self, game_state: GameState) -> bool:
        return bool(self.threats(game_state))

    def play(self, game_state: GameState) -> List[Order]:
        player = game_state.me
        orders = []
        survivors = []

        for enemy_unit in self.threats(game_state):
            links = [t for t in game_state.neighbors(enemy_unit.position) if t.state == TileState.ENEMY_ACTIVE]
            if (len(links) == 1 and player.can_afford(TRAIN_COST[1])
                    and not game_state.any_unit_on(links[0].position)
                    and not is_protected_by_enemy_tower(game_state, links[0].position)
                    and any(t.state == TileState.ALLY_ACTIVE for t in game_state.neighbors(links[0].position))):
                orders.append(train_unit(game_state, 1, links[0]))
                game_state.kill_unit(enemy_unit)
                log_event(game_state, f"Level 3 unit {enemy_unit.id} cut off at {links[0].position}")
            else:
                survivors.append(enemy_unit)

        for enemy_unit in survivors:
            tile = game_state.tile_at(enemy_unit.position)
            touches_territory = any(t.state == TileState.ALLY_ACTIVE for t in game_state.neighbors(tile.position))
            if touches_territory and player.can_afford(TRAIN_COST[3]):
                orders.append(train_unit(game_state, 3, tile))
                log_event(game_state, f"Level 3 unit {enemy_unit.id} attacked at {tile.position}")
        return orders


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class DecisionEngine:
    """
    Owns the board across turns and runs one decision cycle per snapshot.

    The phase moves from EARLY to MAIN once the turn count passes
    early_phase_turns, and never moves back.
    """

    def __init__(self, mine_spots: Iterable[Position], config: Optional[Dict[str, Any]] = None):
        self.config = config if config is not None else load_config()
        self.game_state = create_game(mine_spots)
        self.phase = Phase.EARLY
        self.conditional_strategies: List[OptionalStrategy] = [
            StrategyInstantKill(self.config),
            StrategyTowerDefense(self.config),
            StrategyKillLevel3(self.config),
        ]
        self.strategies: Dict[Phase, Strategy] = {
            Phase.EARLY: StrategyConquer(self.config),
            Phase.MAIN: StrategyAttack(self.config),
        }

    def update_phase(self) -> None:
        if self.phase == Phase.EARLY and self.game_state.turn > self.config['early_phase_turns']:
            self.phase = Phase.MAIN
        self.game_state.phase = self.phase.value

    def play_turn(self, snapshot: TurnSnapshot) -> List[Order]:
        """Apply a snapshot and return this turn's orders."""
        game_state = self.game_state
        game_state.apply_snapshot(snapshot)
        self.update_phase()

        log_event(game_state, f"Turn started with {game_state.me.gold} gold",
                  gold=game_state.me.gold, income=game_state.me.income)

        orders: List[Order] = []
        for strategy in self.conditional_strategies:
            if strategy.is_applicable(game_state):
                log_event(game_state, f"Policy {strategy.name} applies", policy=strategy.name)
                orders.extend(strategy.play(game_state))

        primary = self.strategies[self.phase]
        log_event(game_state, f"Policy {primary.name} runs", policy=primary.name)
        orders.extend(primary.play(game_state))

        game_state.end_turn()
        return orders
