from typing import Dict, Iterable

from .state import Bar, Team


def compute_standings(teams: Dict[str, Team], bars: Iterable[Bar]) -> dict:
    """Derive standings from bar ownership plus manual adjustments.

    ``final_score = owned_count + score_adjustment`` for every team. Bars
    owned by codes no longer on the roster are ignored.
    """
    owned = {code: 0 for code in teams}
    for bar in bars:
        if bar.owner in owned:
            owned[bar.owner] += 1
    final = {code: owned[code] + team.score_adjustment for code, team in teams.items()}
    return {'owned_count': owned, 'final_score': final}


def leaderboard(teams: Dict[str, Team], standings: dict) -> list:
    rows = [
        {
            'code': code,
            'name': team.name,
            'color': team.color,
            'score': standings['final_score'][code],
        }
        for code, team in teams.items()
    ]
    rows.sort(key=lambda r: (-r['score'], r['code']))
    return rows
