from flask import Flask, request, jsonify
from flask_cors import CORS
from models import AggressionMode
from opponent.agent import OpponentAgent
from opponent.providers import GeminiProvider
from persistence import JsonFileStore
from state import GameSettings, SettingsError, load_config
from turn import EventKind, GameEvent, TurnOrchestrator
from typing import Any, Callable, Dict, List, Tuple
import logging
import os
import random
import time
import uuid

app = Flask(__name__)
CORS(app)  # Enable CORS for all routes
app.config.setdefault('SIMULATE_DELAYS', True)  # Real thinking/travel pauses during the AI turn
app.config.setdefault('SAVE_DIR', None)  # Overrides save_dir from config.json
games: Dict[str, TurnOrchestrator] = {}  # In-memory storage for running matches

logger = logging.getLogger(__name__)


def _no_wait(seconds: float) -> None:
    return None


def _build_agent(config: Dict[str, Any], rng: random.Random) -> OpponentAgent:
    """Remote proposals when an API key is configured, heuristic otherwise."""
    api_key = os.environ.get('GEMINI_API_KEY') or os.environ.get('API_KEY')
    if not api_key:
        return OpponentAgent(rng=rng)
    provider = GeminiProvider(
        model=config['proposal_model'],
        api_key=api_key,
        timeout=config['proposal_timeout'],
    )
    return OpponentAgent(provider=provider, rng=rng)


def _run_collecting(orchestrator: TurnOrchestrator, action: Callable[[], Any]) -> Tuple[Any, List[Dict]]:
    """Run an orchestrator action and capture the events it emits."""
    events: List[GameEvent] = []
    unsubscribe = orchestrator.subscribe(events.append)
    try:
        result = action()
    finally:
        unsubscribe()
    return result, [event.to_dict() for event in events]


def _settings_from(data: Dict[str, Any]) -> GameSettings:
    """Build settings from a request body, accepting a named difficulty preset."""
    fields = {key: data[key] for key in ('difficulty', 'aggression', 'fog_enabled', 'fog_radius') if key in data}
    preset = data.get('preset')
    if preset is not None:
        fields.pop('difficulty', None)
        return GameSettings.from_preset(preset, **fields)
    return GameSettings(**fields)


@app.route('/api/game/new', methods=['POST'])
def new_game():
    """Create a new match at the requested level and settings."""
    try:
        data = request.get_json(silent=True) or {}

        try:
            level = int(data.get('level', 1))
        except (ValueError, TypeError):
            return jsonify({'error': 'Level must be an integer'}), 400
        if level < 1:
            return jsonify({'error': 'Level must be at least 1'}), 400

        seed = data.get('seed')
        if seed is not None:
            try:
                seed = int(seed)
            except (ValueError, TypeError):
                return jsonify({'error': 'Seed must be an integer'}), 400

        try:
            settings = _settings_from(data)
        except SettingsError as e:
            return jsonify({'error': str(e)}), 400

        config = load_config()
        if app.config.get('SAVE_DIR'):
            config['save_dir'] = app.config['SAVE_DIR']
        rng = random.Random(seed)
        orchestrator = TurnOrchestrator(
            level=level,
            settings=settings,
            agent=_build_agent(config, rng),
            store=JsonFileStore(config['save_dir']),
            rng=rng,
            sleep=time.sleep if app.config.get('SIMULATE_DELAYS') else _no_wait,
            config=config,
        )

        # Use UUID for unique game ID generation
        game_id = str(uuid.uuid4())
        games[game_id] = orchestrator
        logger.info("Created game %s at level %d", game_id, level)

        return jsonify({'game_id': game_id, 'state': orchestrator.view()})

    except Exception as e:
        return jsonify({'error': f'Failed to create game: {str(e)}'}), 500


@app.route('/api/game/<game_id>/state', methods=['GET'])
def get_game_state(game_id: str):
    """Retrieve the fog-filtered state for the given game ID."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        return jsonify({'game_id': game_id, **games[game_id].view()})

    except Exception as e:
        return jsonify({'error': f'Failed to retrieve game state: {str(e)}'}), 500


@app.route('/api/game/<game_id>/move', methods=['POST'])
def dispatch_move(game_id: str):
    """Depart a transfer from one player node toward an adjacent node."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'error': 'Invalid JSON data'}), 400
        if not all(key in data for key in ['from_id', 'to_id']):
            return jsonify({'error': 'Move must have from_id and to_id fields'}), 400

        orchestrator = games[game_id]
        transfer_id, events = _run_collecting(
            orchestrator, lambda: orchestrator.dispatch_move(str(data['from_id']), str(data['to_id'])),
        )
        if transfer_id is None:
            return jsonify({'error': 'Move not accepted'}), 409

        return jsonify({'transfer_id': transfer_id, 'events': events, 'state': orchestrator.view()})

    except Exception as e:
        return jsonify({'error': f'Failed to dispatch move: {str(e)}'}), 500


@app.route('/api/game/<game_id>/arrive', methods=['POST'])
def complete_transfer(game_id: str):
    """Resolve a previously dispatched transfer at its destination."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        data = request.get_json(silent=True)
        if data is None or 'transfer_id' not in data:
            return jsonify({'error': 'transfer_id is required'}), 400

        orchestrator = games[game_id]
        result, events = _run_collecting(orchestrator, lambda: orchestrator.complete_transfer(data['transfer_id']))
        if result is None:
            return jsonify({'error': 'Unknown or expired transfer'}), 409

        return jsonify({
            'outcome': result.outcome.value,
            'log': result.log,
            'events': events,
            'state': orchestrator.view(),
        })

    except Exception as e:
        return jsonify({'error': f'Failed to resolve transfer: {str(e)}'}), 500


@app.route('/api/game/<game_id>/undo', methods=['POST'])
def undo_move(game_id: str):
    """Roll back the most recent player move."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        orchestrator = games[game_id]
        undone, events = _run_collecting(orchestrator, orchestrator.undo)
        if not undone:
            return jsonify({'error': 'Nothing to undo'}), 409

        return jsonify({'undone': True, 'events': events, 'state': orchestrator.view()})

    except Exception as e:
        return jsonify({'error': f'Failed to undo: {str(e)}'}), 500


@app.route('/api/game/<game_id>/end_turn', methods=['POST'])
def end_turn(game_id: str):
    """End the player's turn and run the opponent's turn to completion."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        orchestrator = games[game_id]
        ended, events = _run_collecting(orchestrator, orchestrator.end_turn)
        if not ended:
            return jsonify({'error': 'Cannot end turn now'}), 409

        winner = [e for e in events if e['kind'] in (EventKind.WIN.value, EventKind.LOSE.value)]
        return jsonify({
            'events': events,
            'game_over': bool(winner),
            'state': orchestrator.view(),
        })

    except Exception as e:
        return jsonify({'error': f'Failed to end turn: {str(e)}'}), 500


@app.route('/api/game/<game_id>/next_level', methods=['POST'])
def next_level(game_id: str):
    """Advance to the next level with a freshly generated map."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        orchestrator = games[game_id]
        orchestrator.next_level()
        return jsonify({'level': orchestrator.level, 'state': orchestrator.view()})

    except Exception as e:
        return jsonify({'error': f'Failed to start next level: {str(e)}'}), 500


@app.route('/api/game/<game_id>/retry', methods=['POST'])
def retry_level(game_id: str):
    """Restart the current level on a new map."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        orchestrator = games[game_id]
        orchestrator.retry_level()
        return jsonify({'level': orchestrator.level, 'state': orchestrator.view()})

    except Exception as e:
        return jsonify({'error': f'Failed to retry level: {str(e)}'}), 500


@app.route('/api/game/<game_id>/settings', methods=['PUT'])
def update_settings(game_id: str):
    """Change difficulty, aggression or fog options."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Invalid JSON data'}), 400

        changes = dict(data)
        preset = changes.pop('preset', None)
        orchestrator = games[game_id]
        try:
            if preset is not None:
                changes['difficulty'] = GameSettings.from_preset(preset).difficulty
            settings = orchestrator.update_settings(**changes)
        except SettingsError as e:
            return jsonify({'error': str(e)}), 400

        return jsonify({'settings': settings.to_dict(), 'aggression_modes': [m.value for m in AggressionMode]})

    except Exception as e:
        return jsonify({'error': f'Failed to update settings: {str(e)}'}), 500


@app.route('/api/game/<game_id>/save', methods=['POST', 'GET', 'DELETE'])
def save_slot(game_id: str):
    """Save the match (POST), check for a save (GET) or clear it (DELETE)."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        orchestrator = games[game_id]
        if request.method == 'GET':
            return jsonify({'has_save': orchestrator.has_save()})
        if request.method == 'DELETE':
            orchestrator.clear_save()
            return jsonify({'has_save': False})

        if not orchestrator.save():
            return jsonify({'error': orchestrator.game_state.logs[0]}), 409
        return jsonify({'saved': True, 'logs': orchestrator.game_state.logs})

    except Exception as e:
        return jsonify({'error': f'Failed to access save slot: {str(e)}'}), 500


@app.route('/api/game/<game_id>/load', methods=['POST'])
def load_game(game_id: str):
    """Replace the running match with the saved one."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        orchestrator = games[game_id]
        loaded, events = _run_collecting(orchestrator, orchestrator.load)
        if not loaded:
            return jsonify({'error': orchestrator.game_state.logs[0]}), 409

        return jsonify({'loaded': True, 'events': events, 'state': orchestrator.view()})

    except Exception as e:
        return jsonify({'error': f'Failed to load game: {str(e)}'}), 500


@app.route('/api/game/<game_id>/log', methods=['GET'])
def get_game_log(game_id: str):
    """Retrieve the recent game log, most recent first."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        orchestrator = games[game_id]
        return jsonify({
            'game_id': game_id,
            'turn': orchestrator.game_state.turn,
            'phase': orchestrator.phase.value,
            'log': orchestrator.game_state.logs,
        })

    except Exception as e:
        return jsonify({'error': f'Failed to retrieve game log: {str(e)}'}), 500


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True)
