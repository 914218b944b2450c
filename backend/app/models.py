from app import db
import json


def _dumps(value):
    return json.dumps(value) if value is not None else None


def _loads(value, default=None):
    if not value:
        return default
    return json.loads(value)


class GameRecord(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    access_code = db.Column(db.String(64), nullable=False, default='')
    start = db.Column(db.Float, nullable=True)
    end = db.Column(db.Float, nullable=True)
    master_deck = db.Column(db.Text, nullable=True)  # JSON-encoded list of cards
    version = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'window': {'access_code': self.access_code or '', 'start': self.start, 'end': self.end},
            'master_deck': _loads(self.master_deck, []),
            'version': self.version or 0,
        }


class TeamRecord(db.Model):
    __tablename__ = 'team'
    code = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    color = db.Column(db.String(16), nullable=False, default='#4f46e5')
    score_adjustment = db.Column(db.Integer, nullable=False, default=0)
    penalty_until = db.Column(db.Float, nullable=True)
    deck_seed = db.Column(db.String(128), nullable=False, default='')
    deck = db.Column(db.Text, nullable=True)  # JSON-encoded shuffled cards
    drawn_card_ids = db.Column(db.Text, nullable=True)  # JSON-encoded list of card ids
    active_challenge = db.Column(db.Text, nullable=True)
    bars = db.relationship('BarRecord', back_populates='owner_team')

    def to_dict(self):
        return {
            'code': self.code,
            'name': self.name,
            'color': self.color,
            'score_adjustment': self.score_adjustment or 0,
            'penalty_until': self.penalty_until,
            'deck_seed': self.deck_seed or '',
            'deck': _loads(self.deck, []),
            'drawn_card_ids': _loads(self.drawn_card_ids, []),
            'active_challenge': _loads(self.active_challenge),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            code=data['code'],
            name=data['name'],
            color=data['color'],
            score_adjustment=data['score_adjustment'],
            penalty_until=data['penalty_until'],
            deck_seed=data['deck_seed'],
            deck=_dumps(data['deck']),
            drawn_card_ids=_dumps(data['drawn_card_ids']),
            active_challenge=_dumps(data['active_challenge']),
        )


class BarRecord(db.Model):
    __tablename__ = 'bar'
    place_id = db.Column(db.String(255), primary_key=True)
    name = db.Column(db.String(255), nullable=False, default='')
    lat = db.Column(db.Float, nullable=False, default=0.0)
    lng = db.Column(db.Float, nullable=False, default=0.0)
    owner = db.Column(db.String(64), db.ForeignKey('team.code'), nullable=True)
    locked = db.Column(db.Boolean, nullable=False, default=False)
    failed_steal_attempts = db.Column(db.Integer, nullable=False, default=0)
    proof = db.Column(db.Text, nullable=True)  # JSON-encoded {"team_photo": url, ...}
    owner_team = db.relationship('TeamRecord', back_populates='bars')

    def to_dict(self):
        return {
            'place_id': self.place_id,
            'name': self.name,
            'lat': self.lat,
            'lng': self.lng,
            'owner': self.owner,
            'locked': bool(self.locked),
            'failed_steal_attempts': self.failed_steal_attempts or 0,
            'proof': _loads(self.proof, {}),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            place_id=data['place_id'],
            name=data['name'],
            lat=data['lat'],
            lng=data['lng'],
            owner=data['owner'],
            locked=data['locked'],
            failed_steal_attempts=data['failed_steal_attempts'],
            proof=_dumps(data['proof'] or None),
        )
