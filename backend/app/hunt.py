"""Flask extension that owns the process-wide :class:`GameSession`.

Routes call :meth:`Hunt.run` with a session operation; the operation runs
under the session lock, the resulting state is persisted through the
SQL snapshot store and the public snapshot is broadcast to every
Socket.IO observer.
"""
import threading

from flask import current_app, jsonify

from app.services.hunt import GameSession, Rules
from app.services.hunt.cards import load_deck_file


class Hunt:
    def __init__(self, app=None):
        self.session = None
        self.store = None
        self._save_lock = threading.Lock()
        self._saved_version = -1
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        from app.persistence import SqlSnapshotStore

        self.session = GameSession(
            rules=Rules.from_config(app.config),
            access_code=app.config.get('GAME_ACCESS_CODE', ''),
        )
        self.store = SqlSnapshotStore()
        self._saved_version = -1
        app.extensions['hunt'] = self

        with app.app_context():
            if self.store.tables_ready():
                state = self.store.load()
                if state is not None:
                    self.session.restore(state)
                    self._saved_version = state.version
                    app.logger.info(f"[hunt-restore] version={state.version} teams={len(state.teams)} bars={len(state.bars)}")
        self.seed_from_config(app)

    def seed_from_config(self, app):
        """Add configured teams and the deck file without touching saved progress."""
        for spec in app.config.get('HUNT_TEAMS') or []:
            code = spec.get('code')
            if code in self.session.teams:
                continue
            self.session.set_team_config(code, spec.get('name'), spec.get('color'))
        deck_file = app.config.get('HUNT_DECK_FILE')
        if deck_file and not self.session.master_deck:
            count = self.session.load_master_deck(load_deck_file(deck_file))
            app.logger.info(f"[hunt-deck] loaded {count} cards from {deck_file}")

    def run(self, operation, *args, **kwargs):
        """Apply one session operation, then persist and broadcast.

        Rule violations (``HuntError``) propagate untouched and nothing is
        saved or emitted for them.
        """
        with self.session.lock:
            result = getattr(self.session, operation)(*args, **kwargs)
            state = self.session.export_state()
            public = self.session.snapshot()
        self._persist(state)
        self.broadcast(public)
        return result

    def _persist(self, state):
        with self._save_lock:
            # A slower request must not overwrite a newer saved state.
            if state.version <= self._saved_version:
                return
            self.store.save(state)
            self._saved_version = state.version

    def broadcast(self, public=None):
        from app import socketio

        if public is None:
            public = self.session.snapshot()
        socketio.emit('state', public, namespace='/ws')
        current_app.logger.debug(f"[broadcast] version={public['version']}")


_ERROR_STATUS = {
    'InvalidGameCode': 403,
    'InvalidTeamCode': 404,
}


def error_response(exc):
    """JSON body and status for a rejected engine operation."""
    current_app.logger.info(f"[rejected] code={exc.code} message={exc}")
    return jsonify(exc.to_dict()), _ERROR_STATUS.get(exc.code, 400)
