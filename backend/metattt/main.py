from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


def _manager():
    return current_app.extensions['game_manager']


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the ultimate tic-tac-toe server!'})


@main.route('/api/state', methods=['GET'])
def get_game_state():
    payload = _manager().snapshot()
    payload['reset_delay_sec'] = current_app.config.get('RESET_DELAY_SEC', 5)
    return jsonify(payload)


@main.route('/api/history', methods=['GET'])
def get_history():
    return jsonify(_manager().history())


@main.route('/api/players', methods=['GET'])
def get_players():
    """Leaderboard of every registered player, highest score first."""
    return jsonify(_manager().player_list())
