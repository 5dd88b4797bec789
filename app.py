from flask import Flask, request, jsonify
from flask_cors import CORS
from map_gen import generate_map, initial_snapshot
from models import SnapshotError
from orders import OrderValidationError, format_orders, get_order_summary
from protocol import mine_spots_from_list, snapshot_from_dict
from strategy import DecisionEngine
from typing import Dict
import uuid

app = Flask(__name__)
CORS(app)  # Enable CORS for all routes
bots: Dict[str, DecisionEngine] = {}  # In-memory storage for running bots

@app.route('/api/bot/new', methods=['POST'])
def new_bot():
    """Create a bot for a new match from the startup mine spot list."""
    try:
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'error': 'Invalid JSON data'}), 400

        mine_spots = mine_spots_from_list(data.get('mine_spots', []))

        bot_id = str(uuid.uuid4())
        bots[bot_id] = DecisionEngine(mine_spots)

        return jsonify({'bot_id': bot_id})

    except SnapshotError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to create bot: {str(e)}'}), 500

@app.route('/api/bot/<bot_id>/turn', methods=['POST'])
def play_turn(bot_id: str):
    """Feed one turn snapshot to the bot and return its orders."""
    try:
        if bot_id not in bots:
            return jsonify({'error': 'Bot not found'}), 404

        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'error': 'Invalid JSON data'}), 400

        engine = bots[bot_id]
        orders = engine.play_turn(snapshot_from_dict(data))

        return jsonify({
            'bot_id': bot_id,
            'turn': engine.game_state.turn,
            'phase': engine.game_state.phase,
            'orders': [get_order_summary(order) for order in orders],
            'command': format_orders(orders),
        })

    except SnapshotError as e:
        return jsonify({'error': f'Invalid snapshot: {str(e)}'}), 400
    except OrderValidationError as e:
        return jsonify({'error': f'Engine produced an invalid order: {str(e)}'}), 500
    except Exception as e:
        return jsonify({'error': f'Failed to play turn: {str(e)}'}), 500

@app.route('/api/bot/<bot_id>/state', methods=['GET'])
def get_bot_state(bot_id: str):
    """Retrieve the board as the bot last planned it."""
    try:
        if bot_id not in bots:
            return jsonify({'error': 'Bot not found'}), 404

        state_json = bots[bot_id].game_state.summary()
        state_json['bot_id'] = bot_id
        return jsonify(state_json)

    except Exception as e:
        return jsonify({'error': f'Failed to retrieve bot state: {str(e)}'}), 500

@app.route('/api/bot/<bot_id>/log', methods=['GET'])
def get_bot_log(bot_id: str):
    """Retrieve the event log of the last turn."""
    try:
        if bot_id not in bots:
            return jsonify({'error': 'Bot not found'}), 404

        game_state = bots[bot_id].game_state

        log_response = {
            'bot_id': bot_id,
            'turn': game_state.turn,
            'phase': game_state.phase,
            'log': game_state.log
        }

        return jsonify(log_response)

    except Exception as e:
        return jsonify({'error': f'Failed to retrieve bot log: {str(e)}'}), 500

@app.route('/api/map/new', methods=['POST'])
def new_map():
    """Generate an arena with the provided seed."""
    try:
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'error': 'Invalid JSON data'}), 400

        seed = data.get('seed', 42)  # Default seed if none provided

        # Validate seed is an integer
        try:
            seed = int(seed)
        except (ValueError, TypeError):
            return jsonify({'error': 'Seed must be an integer'}), 400

        arena = generate_map(seed)
        snapshot = initial_snapshot(arena)

        return jsonify({
            'seed': arena.seed,
            'rows': arena.rows,
            'mine_spots': [list(p) for p in arena.mine_spots],
            'headquarters': [list(p) for p in arena.headquarters],
            'snapshot': {
                'my_gold': snapshot.my_gold,
                'my_income': snapshot.my_income,
                'enemy_gold': snapshot.enemy_gold,
                'enemy_income': snapshot.enemy_income,
                'rows': snapshot.rows,
                'buildings': [
                    {'owner': owner, 'type': building_type, 'x': x, 'y': y}
                    for owner, building_type, x, y in snapshot.buildings
                ],
                'units': [],
            },
        })

    except Exception as e:
        return jsonify({'error': f'Failed to generate map: {str(e)}'}), 500

if __name__ == '__main__':
    app.run(debug=True)
