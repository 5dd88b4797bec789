"""
Referee input parsing.

The referee writes whitespace-separated tokens: the mine spot list once,
then one block per turn. These helpers consume a token iterator so the same
code reads a live stdin stream or a recorded string.
"""

from typing import Iterable, Iterator, List, TextIO

from models import GRID_SIZE, Position, SnapshotError, TurnSnapshot


def tokenize(stream: TextIO) -> Iterator[str]:
    """Yield tokens line by line, without reading ahead of the current line."""
    for line in stream:
        yield from line.split()


def _next_int(tokens: Iterator[str]) -> int:
    token = next(tokens)
    try:
        return int(token)
    except ValueError:
        raise SnapshotError(f"Expected an integer, got {token!r}")


def read_mine_spots(tokens: Iterator[str]) -> List[Position]:
    """Read the startup mine spot list."""
    count = _next_int(tokens)
    return [(_next_int(tokens), _next_int(tokens)) for _ in range(count)]


def read_turn(tokens: Iterator[str]) -> TurnSnapshot:
    """
    Read one turn block.

    Raises:
        StopIteration: the stream ended before a new turn began
        SnapshotError: a token does not have the expected shape
    """
    my_gold = _next_int(tokens)
    my_income = _next_int(tokens)
    enemy_gold = _next_int(tokens)
    enemy_income = _next_int(tokens)

    rows = [next(tokens) for _ in range(GRID_SIZE)]

    buildings = []
    for _ in range(_next_int(tokens)):
        owner, building_type, x, y = [_next_int(tokens) for _ in range(4)]
        buildings.append((owner, building_type, x, y))

    units = []
    for _ in range(_next_int(tokens)):
        owner, unit_id, level, x, y = [_next_int(tokens) for _ in range(5)]
        units.append((owner, unit_id, level, x, y))

    return TurnSnapshot(
        my_gold=my_gold,
        my_income=my_income,
        enemy_gold=enemy_gold,
        enemy_income=enemy_income,
        rows=rows,
        buildings=buildings,
        units=units,
    )


def snapshot_from_dict(data: dict) -> TurnSnapshot:
    """Build a snapshot from the JSON shape used by the HTTP adapter."""
    try:
        return TurnSnapshot(
            my_gold=int(data['my_gold']),
            my_income=int(data['my_income']),
            enemy_gold=int(data['enemy_gold']),
            enemy_income=int(data['enemy_income']),
            rows=[str(row) for row in data['rows']],
            buildings=[
                (int(b['owner']), int(b['type']), int(b['x']), int(b['y']))
                for b in data.get('buildings', [])
            ],
            units=[
                (int(u['owner']), int(u['id']), int(u['level']), int(u['x']), int(u['y']))
                for u in data.get('units', [])
            ],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"Malformed snapshot: {e}")


def mine_spots_from_list(data: Iterable) -> List[Position]:
    try:
        return [(int(x), int(y)) for x, y in data]
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Malformed mine spot list: {e}")
