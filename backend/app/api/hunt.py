from flask import Blueprint, jsonify, request, current_app
from werkzeug.utils import secure_filename
from app import hunt
from app.hunt import error_response
from app.services.hunt import HuntError
import os
import time


hunt_api = Blueprint('hunt_api', __name__)

PROOF_FIELDS = ('team_photo', 'drinks_photo')


@hunt_api.errorhandler(HuntError)
def handle_hunt_error(exc):
    return error_response(exc)


def _payload():
    # Claims arrive as multipart (photos) or JSON
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _as_float(value, field):
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        raise ValueError(f'{field} must be a number')


def _pending_uploads():
    """Map proof field -> (uploaded file, stored filename) for attached photos."""
    pending = {}
    for field in PROOF_FIELDS:
        upload = request.files.get(field)
        if upload and upload.filename:
            safe = secure_filename(upload.filename) or 'photo'
            pending[field] = (upload, f"{int(time.time() * 1000)}_{safe}")
    return pending


def _stage_uploads(pending):
    """Write photos under a ``.part`` name; returns (staged path, final path) pairs."""
    staged = []
    if not pending:
        return staged
    folder = current_app.config['UPLOAD_FOLDER']
    try:
        os.makedirs(folder, exist_ok=True)
        for upload, name in pending.values():
            final = os.path.join(folder, name)
            staged.append((final + '.part', final))
            upload.save(final + '.part')
    except OSError:
        _discard(staged)
        raise
    return staged


def _discard(staged):
    for part, _ in staged:
        if os.path.exists(part):
            os.remove(part)


@hunt_api.route('/state', methods=['GET'])
def get_state():
    return jsonify(hunt.session.snapshot())


@hunt_api.route('/join', methods=['POST'])
def join():
    data = request.get_json(silent=True) or {}
    team = hunt.session.join(data.get('game_code'), data.get('team_code'), data.get('display_name'))
    current_app.logger.info(f"[join] team={team.code} name={data.get('display_name')}")
    snapshot = hunt.session.snapshot()
    return jsonify({'ok': True, 'team_code': team.code, 'team': snapshot['teams'][team.code]})


@hunt_api.route('/claim', methods=['POST'])
def claim():
    data = _payload()
    place_id = data.get('place_id')
    if not place_id:
        return jsonify({'error': 'place_id is required', 'code': 'MissingFields'}), 400
    try:
        lat = _as_float(data.get('lat'), 'lat')
        lng = _as_float(data.get('lng'), 'lng')
    except ValueError as exc:
        return jsonify({'error': str(exc), 'code': 'MissingFields'}), 400

    # The engine trusts this flag. Photos are written before the claim and only
    # renamed into place once it is accepted.
    pending = _pending_uploads()
    has_proof = bool(pending) or _as_bool(data.get('has_proof', False))
    proof = {field: f"/uploads/{name}" for field, (_, name) in pending.items()}
    try:
        staged = _stage_uploads(pending)
    except OSError as exc:
        current_app.logger.error(f"[claim] could not store photos for bar={place_id}: {exc}")
        return jsonify({'error': 'Could not store photo proof.', 'code': 'UploadFailed'}), 500

    try:
        bar = hunt.run(
            'claim', data.get('game_code'), data.get('team_code'), place_id,
            name=data.get('name') or '', lat=lat, lng=lng, has_proof=has_proof, proof=proof,
        )
    except Exception:
        _discard(staged)
        raise
    for part, final in staged:
        os.replace(part, final)
    current_app.logger.info(f"[claim] team={data.get('team_code')} bar={place_id} photos={len(pending)}")
    return jsonify({'ok': True, 'bar': bar.to_public_dict(), 'place_id': bar.place_id})


@hunt_api.route('/lock', methods=['POST'])
def lock():
    data = request.get_json(silent=True) or {}
    bar = hunt.run('lock_bar', data.get('game_code'), data.get('team_code'), data.get('place_id'))
    current_app.logger.info(f"[lock] team={data.get('team_code')} bar={bar.place_id}")
    return jsonify({'ok': True, 'bar': bar.to_public_dict(), 'place_id': bar.place_id})


@hunt_api.route('/steal', methods=['POST'])
def steal():
    data = request.get_json(silent=True) or {}
    success = _as_bool(data.get('success', False))
    bar = hunt.run('steal_attempt', data.get('game_code'), data.get('team_code'), data.get('place_id'), success)
    current_app.logger.info(
        f"[steal] team={data.get('team_code')} bar={bar.place_id} success={success} owner={bar.owner} locked={bar.locked}"
    )
    body = {'ok': True, 'success': success, 'bar': bar.to_public_dict(), 'place_id': bar.place_id}
    if not success:
        body['penalty_minutes'] = hunt.session.rules.steal_penalty_minutes
    return jsonify(body)


@hunt_api.route('/deck/draw', methods=['POST'])
def draw_card():
    data = request.get_json(silent=True) or {}
    challenge = hunt.run('draw_card', data.get('team_code'))
    current_app.logger.info(f"[draw] team={data.get('team_code')} card={challenge.card_id}")
    return jsonify({
        'ok': True,
        'challenge': challenge.to_dict(),
        'min_attempt_minutes': hunt.session.rules.veto_min_minutes,
    })


@hunt_api.route('/deck/complete', methods=['POST'])
def complete_challenge():
    data = request.get_json(silent=True) or {}
    hunt.run('complete_challenge', data.get('team_code'))
    current_app.logger.info(f"[complete] team={data.get('team_code')}")
    return jsonify({'ok': True})


@hunt_api.route('/deck/veto', methods=['POST'])
def veto_challenge():
    data = request.get_json(silent=True) or {}
    minutes = hunt.run('veto_challenge', data.get('team_code'))
    current_app.logger.info(f"[veto] team={data.get('team_code')} penalty={minutes}m")
    return jsonify({'ok': True, 'penalty_minutes': minutes})
