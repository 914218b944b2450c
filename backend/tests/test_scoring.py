from app.services.hunt.scoring import compute_standings, leaderboard
from app.services.hunt.state import Bar, Team


def _teams():
    return {
        'T1': Team(code='T1', name='One'),
        'T2': Team(code='T2', name='Two'),
    }


def test_standings_count_owned_bars():
    teams = _teams()
    bars = [
        Bar(place_id='B1', owner='T1'),
        Bar(place_id='B2', owner='T1', locked=True),
        Bar(place_id='B3', owner='T2'),
        Bar(place_id='B4'),
        Bar(place_id='B5', owner='GONE'),
    ]
    standings = compute_standings(teams, bars)
    assert standings['owned_count'] == {'T1': 2, 'T2': 1}
    assert standings['final_score'] == {'T1': 2, 'T2': 1}


def test_adjustment_is_added_to_owned_count():
    teams = _teams()
    teams['T1'].score_adjustment = -2
    bars = [Bar(place_id=f'B{i}', owner='T1') for i in range(3)]
    standings = compute_standings(teams, bars)
    assert standings['owned_count']['T1'] == 3
    assert standings['final_score']['T1'] == 1


def test_leaderboard_sorted_by_score_then_code():
    teams = _teams()
    teams['T3'] = Team(code='T3', name='Three')
    standings = compute_standings(teams, [Bar(place_id='B1', owner='T3')])
    rows = leaderboard(teams, standings)
    assert [r['code'] for r in rows] == ['T3', 'T1', 'T2']
    assert rows[0]['score'] == 1


def test_scenario_admin_adjustment(session):
    for pid in ('B1', 'B2', 'B3'):
        session.claim('', 'T1', pid, has_proof=True)
    session.set_adjustments('', {'T1': -2})
    standings = session.standings()
    assert standings['owned_count']['T1'] == 3
    assert standings['final_score']['T1'] == 1
    assert session.snapshot()['teams']['T1']['score'] == 1


def test_final_score_identity_through_a_game(session, clock):
    def check():
        standings = session.standings()
        for code, team in session.teams.items():
            assert standings['final_score'][code] == standings['owned_count'][code] + team.score_adjustment

    session.claim('', 'T1', 'B1', has_proof=True)
    check()
    session.claim('', 'T2', 'B2', has_proof=True)
    session.steal_attempt('', 'T2', 'B1', True)
    check()
    assert session.standings()['owned_count'] == {'T1': 0, 'T2': 2, 'T3': 0}
    session.set_adjustments('', {'T3': 4, 'T1': 1})
    check()
    session.lock_bar('', 'T2', 'B1')
    session.steal_attempt('', 'T3', 'B2', False)
    clock.advance(minutes=5)
    session.steal_attempt('', 'T3', 'B2', False)
    check()
    assert session.standings()['final_score'] == {'T1': 1, 'T2': 2, 'T3': 4}
