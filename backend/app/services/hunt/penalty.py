import math
from typing import Optional

from .state import Team


def extended_until(penalty_until: Optional[float], now: float, minutes: float) -> float:
    """New lockout end: penalties stack on top of any time still remaining."""
    return max(now, penalty_until or 0) + minutes * 60


def is_penalized(team: Team, now: float) -> bool:
    return team.penalty_until is not None and now < team.penalty_until


def remaining_seconds(team: Team, now: float) -> int:
    if not is_penalized(team, now):
        return 0
    return math.ceil(team.penalty_until - now)
