"""
CLI preview mode for the territory bot.

Generates an arena, plays the bot's first turn on it and prints the
board before and after planning, followed by the command line the bot
would send to the referee.

Usage: python play_cli.py [seed]
"""

import random
import sys

from map_gen import generate_map, initial_snapshot
from models import GRID_SIZE, ME, BuildingType
from orders import format_orders
from state import GameState, create_game
from strategy import DecisionEngine

BUILDING_CHAR = {
    BuildingType.HQ: "H",
    BuildingType.MINE: "M",
    BuildingType.TOWER: "T",
}


# ---------------------------------------------------------------------------
# ASCII Renderer
# ---------------------------------------------------------------------------


def render_board(game: GameState, mine_spots=()):
    """Render tiles, mine spots, buildings and units (units drawn on top)."""
    display = {t.position: t.state.value for t in game.all_tiles()}

    for position in mine_spots:
        display[position] = "$"

    # Buildings: uppercase for mine, lowercase for the enemy
    for b in game.buildings:
        char = BUILDING_CHAR[b.type]
        display[b.position] = char if b.owner == ME else char.lower()

    for u in game.all_units():
        display[u.position] = str(u.level) if u.owner == ME else "abc"[u.level - 1]

    print()
    print("    x: " + " ".join(f"{x % 10}" for x in range(GRID_SIZE)))
    print("  y  " + "-" * (GRID_SIZE * 2 + 2))
    for y in range(GRID_SIZE):
        print(f" {y:2d} |  " + " ".join(display.get((x, y), " ") for x in range(GRID_SIZE)))
    print()


def show_status(game: GameState):
    me, enemy = game.me, game.enemy
    print(f"=== TURN {game.turn} ({game.phase}) ===")
    print(f"  Gold: {me.gold}  Income: {me.income}    Enemy gold: {enemy.gold}  Enemy income: {enemy.income}")
    territory = game.territory_counts()
    print(f"  Territory: active={territory['ally_active']}  neutral={territory['neutral']}  void={territory['void']}")


def show_log(game: GameState):
    print("Decisions:")
    for entry in game.log:
        print(f"  - {entry['event']}")


def main():
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else random.randint(0, 99999)

    print("=" * 50)
    print("  TERRITORY BOT  -  CLI Preview")
    print("=" * 50)
    print(f"\nMap seed: {seed}")

    arena = generate_map(seed)
    print(f"Mine spots: {', '.join(f'({x},{y})' for x, y in arena.mine_spots) or 'none'}")

    snapshot = initial_snapshot(arena)

    # Board as received
    received = create_game(arena.mine_spots)
    received.apply_snapshot(snapshot)
    render_board(received, arena.mine_spots)

    engine = DecisionEngine(arena.mine_spots)
    orders = engine.play_turn(snapshot)

    show_status(engine.game_state)
    render_board(engine.game_state, arena.mine_spots)
    show_log(engine.game_state)

    print()
    print(format_orders(orders))


if __name__ == "__main__":
    main()
