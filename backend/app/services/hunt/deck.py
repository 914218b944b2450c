"""Per-team challenge deck: seeded shuffle and the draw/complete/veto cycle.

The functions here never write to a :class:`Team`; they validate and
return the values :class:`GameSession` should apply.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Sequence

from .errors import ChallengeAlreadyActive, DeckExhausted, NoActiveChallenge, VetoTooEarly
from .state import Card, Challenge, Team

logger = logging.getLogger(__name__)

_LCG_MULTIPLIER = 1664525
_LCG_INCREMENT = 1013904223
_LCG_MASK = 0xFFFFFFFF


def seeded_shuffle(cards: Sequence[Card], seed: str) -> List[Card]:
    """Return a permutation of ``cards`` that depends only on ``seed``.

    Fisher-Yates driven by a 32-bit linear congruential generator whose
    initial state is the XOR of the seed's character codes.
    """
    order = list(cards)
    state = 0
    for ch in seed:
        state ^= ord(ch)
    for i in range(len(order) - 1, 0, -1):
        state = (state * _LCG_MULTIPLIER + _LCG_INCREMENT) & _LCG_MASK
        j = state % (i + 1)
        order[i], order[j] = order[j], order[i]
    return order


def make_seed(team_code: str, now: float) -> str:
    return f'{team_code}:{int(now * 1000)}'


@dataclass
class Draw:
    deck: List[Card]
    deck_seed: str
    challenge: Challenge


def draw_card(team: Team, master_deck: Sequence[Card], now: float) -> Draw:
    """Pick the team's next undrawn card, shuffling its deck on first use."""
    if team.active_challenge is not None and team.active_challenge.is_active:
        raise ChallengeAlreadyActive()

    deck = team.deck
    seed = team.deck_seed
    if not deck:
        seed = seed or make_seed(team.code, now)
        deck = seeded_shuffle(master_deck, seed)
        logger.info('shuffled deck for team=%s seed=%s cards=%d', team.code, seed, len(deck))

    drawn = set(team.drawn_card_ids)
    card = next((c for c in deck if c.id not in drawn), None)
    if card is None:
        raise DeckExhausted()

    challenge = Challenge(card_id=card.id, text=card.text, kind=card.kind, started_at=now)
    return Draw(deck=deck, deck_seed=seed, challenge=challenge)


def _require_active(team: Team) -> Challenge:
    act = team.active_challenge
    if act is None or not act.is_active:
        raise NoActiveChallenge()
    return act


def complete_challenge(team: Team) -> List[str]:
    """Return the drawn-card ids after completing the active challenge."""
    act = _require_active(team)
    return team.drawn_card_ids + [act.card_id]


def veto_challenge(team: Team, now: float, min_minutes: int) -> List[str]:
    """Return the drawn-card ids after vetoing; too-early vetoes raise."""
    act = _require_active(team)
    elapsed = (now - act.started_at) / 60.0
    if elapsed < min_minutes:
        raise VetoTooEarly(math.ceil(min_minutes - elapsed), min_minutes)
    return team.drawn_card_ids + [act.card_id]
