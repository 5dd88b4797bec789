import json

import pytest

from models import ME, OPPONENT, SnapshotError, TileState, Unit, UNCONFIRMED_UNIT_ID
from state import DEFAULT_CONFIG, create_game, load_config, log_event
from tests.boards import blank_rows, default_rows, make_snapshot, make_state, paint


class TestApplySnapshot:
    def test_tiles_are_indexed_by_x_then_y(self):
        rows = paint(default_rows(), [(3, 2)], "#")
        state = make_state(rows)
        assert state.tile_at((3, 2)).state == TileState.VOID
        assert state.tile_at((2, 3)).state == TileState.NEUTRAL
        assert state.tiles[2][3].position == (3, 2)

    def test_ledgers_and_turn(self):
        state = make_state(my_gold=17, my_income=3, enemy_gold=12, enemy_income=2)
        assert state.turn == 1
        assert (state.me.gold, state.me.income) == (17, 3)
        assert (state.enemy.gold, state.enemy.income) == (12, 2)

    def test_buildings_and_headquarters(self, state):
        assert state.headquarters(ME).position == (0, 0)
        assert state.headquarters(OPPONENT).position == (11, 11)
        assert len(state.buildings) == 2

    def test_wrong_row_count(self):
        state = create_game([])
        with pytest.raises(SnapshotError):
            state.apply_snapshot(make_snapshot(rows=blank_rows()[:11]))

    def test_wrong_row_length(self):
        rows = blank_rows()
        rows[4] = rows[4][:-1]
        with pytest.raises(SnapshotError):
            create_game([]).apply_snapshot(make_snapshot(rows=rows))

    def test_unknown_tile_code(self):
        rows = paint(blank_rows(), [(1, 1)], "?")
        with pytest.raises(SnapshotError):
            create_game([]).apply_snapshot(make_snapshot(rows=rows))

    def test_rejected_snapshot_changes_nothing(self):
        state = make_state(my_gold=10, units=[(ME, 1, 1, 0, 1)])
        log_event(state, "Kept")
        tiles = state.tiles

        bad_tile = make_snapshot(rows=paint(blank_rows(), [(1, 1)], "?"), my_gold=999, enemy_gold=999)
        with pytest.raises(SnapshotError):
            state.apply_snapshot(bad_tile)
        bad_building = make_snapshot(rows=blank_rows("O"), my_gold=999, buildings=[(ME, 7, 0, 0)])
        with pytest.raises(SnapshotError):
            state.apply_snapshot(bad_building)

        assert state.turn == 1
        assert (state.me.gold, state.enemy.gold) == (10, 0)
        assert state.tiles is tiles
        assert state.tile_at((5, 5)).state == TileState.NEUTRAL
        assert len(state.buildings) == 2
        assert [u.id for u in state.me.units] == [1]
        assert [entry["event"] for entry in state.log] == ["Kept"]

    def test_units_are_split_by_owner(self):
        state = make_state(units=[(ME, 1, 1, 0, 1), (OPPONENT, 2, 2, 11, 10)])
        assert [u.id for u in state.me.units] == [1]
        assert [u.id for u in state.enemy.units] == [2]
        assert state.enemy.units[0].owner == OPPONENT
        assert all(u.ready for u in state.all_units())


class TestUnitReconciliation:
    def test_known_unit_is_updated_in_place(self):
        state = make_state(units=[(ME, 5, 1, 0, 1)])
        unit = state.me.units[0]
        unit.ready = False

        state.apply_snapshot(make_snapshot(units=[(ME, 5, 1, 1, 1)]))
        assert state.me.units == [unit]
        assert unit.position == (1, 1)
        assert unit.ready

    def test_unconfirmed_units_are_dropped(self):
        state = make_state(units=[(ME, 5, 1, 0, 1)])
        state.me.units.append(Unit(UNCONFIRMED_UNIT_ID, 1, (1, 0)))

        state.apply_snapshot(make_snapshot(units=[(ME, 5, 1, 0, 1), (ME, 7, 1, 1, 0)]))
        assert sorted(u.id for u in state.me.units) == [5, 7]
        assert state.me.get_unit_by_id(7).ready

    def test_missing_unit_is_dropped(self):
        state = make_state(units=[(ME, 5, 1, 0, 1), (OPPONENT, 6, 1, 11, 10)])
        state.apply_snapshot(make_snapshot(units=[(OPPONENT, 6, 1, 10, 11)]))
        assert state.me.units == []
        assert state.enemy.units[0].position == (10, 11)
        assert state.turn == 2


class TestLookups:
    def test_tile_at_off_grid_raises(self, state):
        with pytest.raises(IndexError):
            state.tile_at((12, 0))

    def test_get_tile_off_grid_is_none(self, state):
        assert state.get_tile((-1, 3)) is None
        assert create_game([]).get_tile((0, 0)) is None

    def test_neighbors_exclude_void(self):
        state = make_state(paint(default_rows(), [(1, 0)], "#"))
        assert [t.position for t in state.adjacent_tiles((0, 0))] == [(0, 1), (1, 0)]
        assert [t.position for t in state.neighbors((0, 0))] == [(0, 1)]

    def test_headquarters_missing(self):
        with pytest.raises(LookupError):
            create_game([]).headquarters(ME)

    def test_unit_lookups(self):
        state = make_state(units=[(ME, 1, 1, 0, 1), (OPPONENT, 2, 1, 5, 5)])
        assert state.unit_at((5, 5)).id == 2
        assert state.unit_at((5, 5), ME) is None
        assert state.any_unit_on((0, 1))
        assert not state.any_unit_on((1, 1))

    def test_find_path_returns_tiles(self, state):
        path = state.find_path((0, 0), (2, 0))
        assert [t.position for t in path] == [(1, 0), (2, 0)]

    def test_kill_unit(self):
        state = make_state(units=[(OPPONENT, 2, 1, 5, 5)])
        state.kill_unit(state.enemy.units[0])
        assert state.enemy.units == []


class TestTurnBookkeeping:
    def test_log_is_cleared_by_new_snapshot(self, state):
        log_event(state, "Something happened", gold=3)
        assert state.log == [{"turn": 1, "phase": "early", "event": "Something happened", "gold": 3}]
        state.apply_snapshot(make_snapshot())
        assert state.log == []

    def test_end_turn_resets_mine_targets(self):
        state = make_state(mine_spots=[(3, 4)])
        state.mine_spots[0].targeted_by = 9
        state.end_turn()
        assert state.mine_spots[0].targeted_by is None

    def test_territory_counts(self, state):
        counts = state.territory_counts()
        assert counts["ally_active"] == 1
        assert counts["enemy_active"] == 1
        assert counts["neutral"] == 142
        assert counts["void"] == 0

    def test_summary(self):
        state = make_state(units=[(ME, 1, 1, 0, 1)])
        summary = state.summary()
        assert summary["turn"] == 1
        assert summary["rows"] == default_rows()
        assert summary["players"][0]["units"][0]["id"] == 1
        assert {b["type"] for b in summary["buildings"]} == {"HQ"}


class TestConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "missing.json")) == DEFAULT_CONFIG

    def test_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"early_phase_turns": 3}))
        config = load_config(str(path))
        assert config["early_phase_turns"] == 3
        assert config["max_explorers"] == DEFAULT_CONFIG["max_explorers"]

    def test_invalid_json_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_shipped_config_matches_defaults(self):
        assert load_config() == DEFAULT_CONFIG
