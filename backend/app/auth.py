from functools import wraps

from flask import current_app, jsonify, request
from flask_login import UserMixin, current_user

from app import bcrypt

ADMIN_ID = 'admin'


class AdminUser(UserMixin):
    id = ADMIN_ID

    def get_id(self):
        return ADMIN_ID


def load_admin(user_id):
    return AdminUser() if user_id == ADMIN_ID else None


def init_admin_secret(app) -> None:
    """Keep only a bcrypt hash of the admin secret on the app."""
    secret = app.config.get('GAME_ADMIN_SECRET') or ''
    app.config['ADMIN_SECRET_HASH'] = bcrypt.generate_password_hash(secret) if secret else None


def check_admin_secret(candidate) -> bool:
    secret_hash = current_app.config.get('ADMIN_SECRET_HASH')
    if not secret_hash:
        return True
    if not candidate:
        return False
    return bcrypt.check_password_hash(secret_hash, candidate)


def admin_required(view):
    """Allow a logged-in admin, a valid X-Admin-Secret header, or anyone in setup mode."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        if current_user.is_authenticated and current_user.get_id() == ADMIN_ID:
            return view(*args, **kwargs)
        if check_admin_secret(request.headers.get('X-Admin-Secret')):
            return view(*args, **kwargs)
        return jsonify({'error': 'Invalid admin secret.'}), 403

    return wrapped
