from flask import Blueprint, current_app, jsonify, request

from marble_royale import get_controller, get_scheduler
from marble_royale.errors import ForceStartDisabled, MarbleRoyaleError
from marble_royale.visitor import current_visitor_id

race = Blueprint('race', __name__)


@race.errorhandler(MarbleRoyaleError)
def handle_race_error(exc):
    if exc.status_code >= 500:
        current_app.logger.error(f"[api-error] {exc!r}")
    return jsonify(exc.to_dict()), exc.status_code


@race.route('/join', methods=['POST'])
def join_lobby():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    visitor_id = current_visitor_id(data)
    username = get_controller().try_join(data.get('username'), visitor_id)
    return jsonify({'ok': True, 'username': username})


# GET fallback for local tools that cannot POST
@race.route('/start-now', methods=['POST', 'GET'])
def start_now():
    if not current_app.config.get('ENABLE_FORCE_START', False):
        raise ForceStartDisabled()
    get_scheduler().force_start()
    return jsonify({'ok': True})


@race.route('/state', methods=['GET'])
def get_state():
    return jsonify(get_controller().state())
