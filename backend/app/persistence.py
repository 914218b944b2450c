"""SQLAlchemy-backed persistence port for the hunt engine.

``load()`` rebuilds a :class:`GameState` from the ``game``/``team``/``bar``
tables and ``save()`` writes a full state back in one transaction.
"""
import json
from typing import Optional

import sqlalchemy as sa

from app import db
from app.models import BarRecord, GameRecord, TeamRecord
from app.services.hunt.state import GameState


class SqlSnapshotStore:
    def tables_ready(self) -> bool:
        insp = sa.inspect(db.engine)
        return all(insp.has_table(name) for name in ('game', 'team', 'bar'))

    def load(self) -> Optional[GameState]:
        game = GameRecord.query.order_by(GameRecord.id).first()
        if game is None:
            return None
        data = game.to_dict()
        data['teams'] = {t.code: t.to_dict() for t in TeamRecord.query.all()}
        data['bars'] = {b.place_id: b.to_dict() for b in BarRecord.query.all()}
        return GameState.from_dict(data)

    def save(self, state: GameState) -> None:
        data = state.to_dict()
        try:
            game = GameRecord.query.order_by(GameRecord.id).first()
            if game is None:
                game = GameRecord()
            window = data['window']
            game.access_code = window['access_code']
            game.start = window['start']
            game.end = window['end']
            game.master_deck = json.dumps(data['master_deck'])
            game.version = data['version']
            db.session.add(game)

            # Bars are a full replace; drop them first so owners can change freely.
            BarRecord.query.delete()
            TeamRecord.query.filter(TeamRecord.code.notin_(list(data['teams']))).delete(synchronize_session=False)
            for team in data['teams'].values():
                db.session.merge(TeamRecord.from_dict(team))
            db.session.flush()
            for bar in data['bars'].values():
                db.session.add(BarRecord.from_dict(bar))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
