"""
Referee entry point: read turns from stdin, write commands to stdout.

Usage: python bot.py

stdout carries only the protocol; the turn's event log goes to stderr.
"""

import sys

from orders import format_orders
from protocol import read_mine_spots, read_turn, tokenize
from strategy import DecisionEngine


def print_log(engine: DecisionEngine) -> None:
    for entry in engine.game_state.log:
        print(f"[turn {entry['turn']} {entry['phase']}] {entry['event']}", file=sys.stderr)


def main():
    tokens = tokenize(sys.stdin)
    engine = DecisionEngine(read_mine_spots(tokens))

    while True:
        try:
            snapshot = read_turn(tokens)
        except StopIteration:
            break

        orders = engine.play_turn(snapshot)
        print_log(engine)
        print(format_orders(orders), flush=True)


if __name__ == "__main__":
    main()
