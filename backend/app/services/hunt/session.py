"""GameSession: the single writer for all hunt state.

Every public operation runs under one re-entrant lock, validates all of
its preconditions and only then writes. Callers that need to persist or
broadcast the result atomically with the mutation can hold
:attr:`GameSession.lock` around the call and the following
:meth:`export_state`/:meth:`snapshot`.
"""
import functools
import logging
import re
import threading
from typing import Dict, Iterable, Mapping, Optional, Sequence

from . import deck as challenge_deck
from . import penalty
from .bars import BarRegistry
from .clock import SystemClock
from .errors import (
    DeckNotLoaded,
    GameWindowClosed,
    InvalidBarSpec,
    InvalidGameCode,
    InvalidGameWindow,
    InvalidTeamCode,
    InvalidTeamConfig,
    MissingDisplayName,
    PenaltyActive,
)
from .rules import Rules
from .scoring import compute_standings, leaderboard
from .state import Bar, Card, Challenge, GameState, GameWindow, Team

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r'[+-]?\d+')


def _whole_number(value) -> int:
    """Accept ints and integer strings only; bools and floats are rejected."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    raise ValueError(value)


def mutation(fn):
    """Serialize ``fn`` against the session and bump the state version."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            result = fn(self, *args, **kwargs)
            self.version += 1
            return result

    return wrapper


class GameSession:
    def __init__(self, clock=None, rules: Optional[Rules] = None, access_code: str = ''):
        self.clock = clock or SystemClock()
        self.rules = rules or Rules()
        self.lock = threading.RLock()
        self.window = GameWindow(access_code=access_code or '')
        self.teams: Dict[str, Team] = {}
        self.bars = BarRegistry(failures_to_lock=self.rules.steal_failures_to_lock)
        self.master_deck: list = []
        self.version = 0

    # ---- lookups and gates ----

    def within_window(self) -> bool:
        return self.window.is_open(self.clock.now())

    def _check_game_code(self, game_code: Optional[str]) -> None:
        expected = self.window.access_code
        if not expected:
            return
        if not isinstance(game_code, str) or game_code.strip() != expected:
            raise InvalidGameCode()

    def _team(self, team_code: Optional[str]) -> Team:
        team = self.teams.get(team_code) if team_code else None
        if team is None:
            raise InvalidTeamCode()
        return team

    def _require_window(self) -> None:
        if not self.within_window():
            raise GameWindowClosed()

    def _require_not_penalized(self, team: Team) -> None:
        if penalty.is_penalized(team, self.clock.now()):
            raise PenaltyActive()

    def _apply_penalty(self, team: Team, minutes: int) -> None:
        team.penalty_until = penalty.extended_until(team.penalty_until, self.clock.now(), minutes)
        logger.info('team=%s penalized %d min (until=%s)', team.code, minutes, team.penalty_until)

    def is_penalized(self, team_code: str) -> bool:
        with self.lock:
            return penalty.is_penalized(self._team(team_code), self.clock.now())

    # ---- player operations ----

    def join(self, game_code: Optional[str], team_code: Optional[str], display_name: Optional[str]) -> Team:
        with self.lock:
            self._check_game_code(game_code)
            team = self._team(team_code)
            if not (display_name or '').strip():
                raise MissingDisplayName()
            logger.info('player %r joined team=%s', display_name.strip(), team.code)
            return team

    @mutation
    def claim(self, game_code, team_code, place_id, name='', lat=0.0, lng=0.0,
              has_proof=False, proof=None) -> Bar:
        self._check_game_code(game_code)
        team = self._team(team_code)
        self._require_window()
        self._require_not_penalized(team)
        if not place_id:
            raise InvalidBarSpec('Bar place_id is required.')
        return self.bars.claim(team.code, place_id, name=name, lat=lat, lng=lng,
                               has_proof=has_proof, proof=proof)

    @mutation
    def lock_bar(self, game_code, team_code, place_id) -> Bar:
        self._check_game_code(game_code)
        team = self._team(team_code)
        return self.bars.lock(team.code, place_id)

    @mutation
    def steal_attempt(self, game_code, team_code, place_id, success: bool) -> Bar:
        self._check_game_code(game_code)
        team = self._team(team_code)
        self._require_window()
        self._require_not_penalized(team)
        outcome = self.bars.steal_attempt(team.code, place_id, bool(success))
        if not outcome.success:
            self._apply_penalty(team, self.rules.steal_penalty_minutes)
        return outcome.bar

    @mutation
    def draw_card(self, team_code) -> Challenge:
        team = self._team(team_code)
        self._require_window()
        if not self.master_deck:
            raise DeckNotLoaded()
        self._require_not_penalized(team)
        draw = challenge_deck.draw_card(team, self.master_deck, self.clock.now())
        team.deck = draw.deck
        team.deck_seed = draw.deck_seed
        team.active_challenge = draw.challenge
        logger.info('team=%s drew card=%s', team.code, draw.challenge.card_id)
        return draw.challenge

    @mutation
    def complete_challenge(self, team_code) -> None:
        team = self._team(team_code)
        drawn = challenge_deck.complete_challenge(team)
        logger.info('team=%s completed card=%s', team.code, team.active_challenge.card_id)
        team.drawn_card_ids = drawn
        team.active_challenge = None

    @mutation
    def veto_challenge(self, team_code) -> int:
        team = self._team(team_code)
        drawn = challenge_deck.veto_challenge(team, self.clock.now(), self.rules.veto_min_minutes)
        logger.info('team=%s vetoed card=%s', team.code, team.active_challenge.card_id)
        team.drawn_card_ids = drawn
        team.active_challenge = None
        self._apply_penalty(team, self.rules.veto_penalty_minutes)
        return self.rules.veto_penalty_minutes

    # ---- administrative operations ----

    @mutation
    def set_game_window(self, access_code: Optional[str], start: Optional[float], end: Optional[float]) -> GameWindow:
        if start is not None and end is not None and end < start:
            raise InvalidGameWindow()
        if access_code is not None:
            self.window.access_code = str(access_code).strip()
        self.window.start = start
        self.window.end = end
        return self.window

    @mutation
    def set_team_config(self, code: Optional[str], name: Optional[str], color: Optional[str] = None) -> Team:
        code = (code or '').strip()
        name = (name or '').strip()
        if not code or not name:
            raise InvalidTeamConfig()
        team = self.teams.get(code)
        if team is None:
            team = Team(code=code, name=name)
            self.teams[code] = team
        else:
            team.name = name
        if color:
            team.color = color
        return team

    @mutation
    def load_master_deck(self, cards: Sequence[Card]) -> int:
        self.master_deck = list(cards)
        logger.info('master deck loaded: %d cards', len(self.master_deck))
        return len(self.master_deck)

    @mutation
    def overwrite_bars(self, game_code, specs: Iterable[Mapping]) -> None:
        self._check_game_code(game_code)
        self.bars.replace(BarRegistry.build(specs, self.teams))

    @mutation
    def set_adjustments(self, game_code, adjustments: Mapping[str, int]) -> None:
        self._check_game_code(game_code)
        values = {}
        for code, delta in adjustments.items():
            self._team(code)
            try:
                values[code] = _whole_number(delta)
            except ValueError as exc:
                raise InvalidTeamConfig(f'Adjustment for {code} must be an integer.') from exc
        for code, delta in values.items():
            self.teams[code].score_adjustment = delta

    @mutation
    def reset_game(self, game_code) -> None:
        """Clear bars and team progress; keep teams, window and master deck."""
        self._check_game_code(game_code)
        self.bars.clear()
        for team in self.teams.values():
            team.reset_progress()

    # ---- views ----

    def standings(self) -> dict:
        with self.lock:
            return compute_standings(self.teams, self.bars)

    def snapshot(self) -> dict:
        """Public state broadcast to every observer."""
        with self.lock:
            now = self.clock.now()
            standings = compute_standings(self.teams, self.bars)
            teams = {}
            for code, team in self.teams.items():
                teams[code] = {
                    'name': team.name,
                    'color': team.color,
                    'score': standings['final_score'][code],
                    'owned_count': standings['owned_count'][code],
                    'score_adjustment': team.score_adjustment,
                    'penalty_until': team.penalty_until,
                    'penalty_remaining_sec': penalty.remaining_seconds(team, now),
                    'active_challenge': team.active_challenge.to_dict() if team.active_challenge else None,
                }
            return {
                'teams': teams,
                'bars': {bar.place_id: bar.to_public_dict() for bar in self.bars},
                'standings': standings,
                'leaderboard': leaderboard(self.teams, standings),
                'game_window': {
                    'start': self.window.start,
                    'end': self.window.end,
                    'active': self.window.is_open(now),
                    'requires_access_code': bool(self.window.access_code),
                },
                'version': self.version,
            }

    def export_state(self) -> GameState:
        with self.lock:
            state = GameState(
                window=self.window,
                teams=self.teams,
                bars=self.bars.as_dict(),
                master_deck=self.master_deck,
                version=self.version,
            )
            # Detached copy so the caller can persist it outside the lock.
            return GameState.from_dict(state.to_dict())

    def restore(self, state: GameState) -> None:
        with self.lock:
            copy = GameState.from_dict(state.to_dict())
            self.window = copy.window
            self.teams = copy.teams
            self.bars.replace(copy.bars)
            self.master_deck = copy.master_deck
            self.version = copy.version
