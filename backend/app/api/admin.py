from flask import Blueprint, jsonify, request, current_app
from flask_login import login_user, logout_user
from app import hunt
from app.auth import AdminUser, admin_required, check_admin_secret
from app.hunt import error_response
from app.services.hunt import HuntError
from app.services.hunt.cards import cards_from_rows, cards_from_upload


admin_api = Blueprint('admin_api', __name__)


@admin_api.errorhandler(HuntError)
def handle_hunt_error(exc):
    return error_response(exc)


def _instant(value):
    """Epoch seconds or None; blank strings clear the bound."""
    if value is None or value == '':
        return None
    return float(value)


@admin_api.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    if not check_admin_secret(data.get('secret')):
        return jsonify({'error': 'Invalid admin secret.'}), 403
    login_user(AdminUser())
    return jsonify({'ok': True})


@admin_api.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'ok': True})


@admin_api.route('/state', methods=['GET'])
@admin_required
def full_state():
    return jsonify(hunt.session.export_state().to_dict())


@admin_api.route('/window', methods=['POST'])
@admin_required
def set_window():
    data = request.get_json(silent=True) or {}
    try:
        start = _instant(data.get('start'))
        end = _instant(data.get('end'))
    except (TypeError, ValueError):
        return jsonify({'error': 'start and end must be epoch seconds', 'code': 'InvalidGameWindow'}), 400
    window = hunt.run('set_game_window', data.get('access_code'), start, end)
    current_app.logger.info(f"[admin-window] start={window.start} end={window.end}")
    return jsonify({'ok': True, 'game': window.to_dict()})


@admin_api.route('/teams', methods=['POST'])
@admin_required
def set_team():
    data = request.get_json(silent=True) or {}
    team = hunt.run('set_team_config', data.get('team_code'), data.get('name'), data.get('color'))
    current_app.logger.info(f"[admin-team] code={team.code} name={team.name}")
    return jsonify({'ok': True, 'team': {'code': team.code, 'name': team.name, 'color': team.color}})


@admin_api.route('/deck', methods=['POST'])
@admin_required
def upload_deck():
    upload = request.files.get('file')
    if upload is not None:
        cards = cards_from_upload(upload.filename, upload.read())
    else:
        data = request.get_json(silent=True) or {}
        if 'cards' not in data:
            return jsonify({'error': 'No file.', 'code': 'InvalidDeck'}), 400
        cards = cards_from_rows(data.get('cards') or [])
    count = hunt.run('load_master_deck', cards)
    current_app.logger.info(f"[admin-deck] cards={count}")
    return jsonify({'ok': True, 'count': count})


@admin_api.route('/adjustments', methods=['POST'])
@admin_required
def set_adjustments():
    data = request.get_json(silent=True) or {}
    adjustments = data.get('adjustments') or {}
    if not isinstance(adjustments, dict):
        return jsonify({'error': 'adjustments must map team codes to integers', 'code': 'InvalidTeamConfig'}), 400
    hunt.run('set_adjustments', data.get('game_code'), adjustments)
    current_app.logger.info(f"[admin-adjust] {adjustments}")
    return jsonify({'ok': True, 'standings': hunt.session.standings()})


@admin_api.route('/bars', methods=['POST'])
@admin_required
def overwrite_bars():
    data = request.get_json(silent=True) or {}
    bars = data.get('bars') or []
    if not isinstance(bars, list):
        return jsonify({'error': 'bars must be a list', 'code': 'InvalidBarSpec'}), 400
    hunt.run('overwrite_bars', data.get('game_code'), bars)
    current_app.logger.info(f"[admin-bars] replaced with {len(bars)} bar(s)")
    return jsonify({'ok': True, 'count': len(bars)})


@admin_api.route('/reset', methods=['POST'])
@admin_required
def reset_game():
    data = request.get_json(silent=True) or {}
    hunt.run('reset_game', data.get('game_code'))
    current_app.logger.info("[admin-reset] bars and team progress cleared")
    return jsonify({'ok': True})
