"""Bar hunt game-state engine.

Bar ownership, per-team challenge decks, penalties and standings. Nothing
in this package touches Flask, the database or sockets; HTTP routes and
socket handlers call :class:`GameSession` and handle persistence and
broadcast themselves.
"""
from .errors import HuntError
from .rules import Rules
from .session import GameSession
from .state import Bar, Card, Challenge, GameState, GameWindow, Team

__all__ = [
    'Bar',
    'Card',
    'Challenge',
    'GameSession',
    'GameState',
    'GameWindow',
    'HuntError',
    'Rules',
    'Team',
]
