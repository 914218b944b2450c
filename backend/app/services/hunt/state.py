"""Value types for the hunt engine.

These are plain records; every rule lives in the component modules and
only :class:`~app.services.hunt.session.GameSession` writes them.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

CARD_KINDS = ('challenge', 'curse')


@dataclass
class GameWindow:
    access_code: str = ''
    start: Optional[float] = None
    end: Optional[float] = None

    def is_open(self, now: float) -> bool:
        # No bounds (or only one) means setup mode: everything is allowed.
        if self.start is None or self.end is None:
            return True
        return self.start <= now <= self.end

    def to_dict(self):
        return {'access_code': self.access_code, 'start': self.start, 'end': self.end}

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            access_code=data.get('access_code') or '',
            start=data.get('start'),
            end=data.get('end'),
        )


@dataclass(frozen=True)
class Card:
    id: str
    kind: str
    text: str

    def to_dict(self):
        return {'id': self.id, 'kind': self.kind, 'text': self.text}

    @classmethod
    def from_dict(cls, data):
        return cls(id=data['id'], kind=data['kind'], text=data['text'])


@dataclass
class Challenge:
    card_id: str
    text: str
    kind: str
    started_at: float
    status: str = 'active'

    @property
    def is_active(self) -> bool:
        return self.status == 'active'

    def to_dict(self):
        return {
            'card_id': self.card_id,
            'text': self.text,
            'kind': self.kind,
            'started_at': self.started_at,
            'status': self.status,
        }

    @classmethod
    def from_dict(cls, data):
        if not data:
            return None
        return cls(
            card_id=data['card_id'],
            text=data['text'],
            kind=data['kind'],
            started_at=data['started_at'],
            status=data.get('status', 'active'),
        )


@dataclass
class Team:
    code: str
    name: str
    color: str = '#4f46e5'
    score_adjustment: int = 0
    penalty_until: Optional[float] = None
    deck: List[Card] = field(default_factory=list)
    drawn_card_ids: List[str] = field(default_factory=list)
    deck_seed: str = ''
    active_challenge: Optional[Challenge] = None

    def reset_progress(self) -> None:
        self.score_adjustment = 0
        self.penalty_until = None
        self.deck = []
        self.drawn_card_ids = []
        self.deck_seed = ''
        self.active_challenge = None

    def to_dict(self):
        return {
            'code': self.code,
            'name': self.name,
            'color': self.color,
            'score_adjustment': self.score_adjustment,
            'penalty_until': self.penalty_until,
            'deck': [c.to_dict() for c in self.deck],
            'drawn_card_ids': list(self.drawn_card_ids),
            'deck_seed': self.deck_seed,
            'active_challenge': self.active_challenge.to_dict() if self.active_challenge else None,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            code=data['code'],
            name=data['name'],
            color=data.get('color') or '#4f46e5',
            score_adjustment=int(data.get('score_adjustment') or 0),
            penalty_until=data.get('penalty_until'),
            deck=[Card.from_dict(c) for c in data.get('deck') or []],
            drawn_card_ids=list(data.get('drawn_card_ids') or []),
            deck_seed=data.get('deck_seed') or '',
            active_challenge=Challenge.from_dict(data.get('active_challenge')),
        )


@dataclass
class Bar:
    place_id: str
    name: str = ''
    lat: float = 0.0
    lng: float = 0.0
    owner: Optional[str] = None
    locked: bool = False
    failed_steal_attempts: int = 0
    proof: Dict[str, str] = field(default_factory=dict)

    @property
    def state(self) -> str:
        if self.owner is None:
            return 'unclaimed'
        return 'locked' if self.locked else 'claimed'

    def to_dict(self):
        return {
            'place_id': self.place_id,
            'name': self.name,
            'lat': self.lat,
            'lng': self.lng,
            'owner': self.owner,
            'locked': self.locked,
            'failed_steal_attempts': self.failed_steal_attempts,
            'proof': dict(self.proof),
        }

    def to_public_dict(self):
        return {
            'name': self.name,
            'lat': self.lat,
            'lng': self.lng,
            'owner': self.owner,
            'locked': self.locked,
            'state': self.state,
            'failed_steal_attempts': self.failed_steal_attempts,
            'proof': dict(self.proof),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            place_id=data['place_id'],
            name=data.get('name') or '',
            lat=float(data.get('lat') or 0),
            lng=float(data.get('lng') or 0),
            owner=data.get('owner'),
            locked=bool(data.get('locked')),
            failed_steal_attempts=int(data.get('failed_steal_attempts') or 0),
            proof=dict(data.get('proof') or {}),
        )


@dataclass
class GameState:
    """Everything the persistence port needs to rebuild a session."""

    window: GameWindow = field(default_factory=GameWindow)
    teams: Dict[str, Team] = field(default_factory=dict)
    bars: Dict[str, Bar] = field(default_factory=dict)
    master_deck: List[Card] = field(default_factory=list)
    version: int = 0

    def to_dict(self):
        return {
            'window': self.window.to_dict(),
            'teams': {code: t.to_dict() for code, t in self.teams.items()},
            'bars': {pid: b.to_dict() for pid, b in self.bars.items()},
            'master_deck': [c.to_dict() for c in self.master_deck],
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            window=GameWindow.from_dict(data.get('window')),
            teams={code: Team.from_dict(t) for code, t in (data.get('teams') or {}).items()},
            bars={pid: Bar.from_dict(b) for pid, b in (data.get('bars') or {}).items()},
            master_deck=[Card.from_dict(c) for c in data.get('master_deck') or []],
            version=int(data.get('version') or 0),
        )
