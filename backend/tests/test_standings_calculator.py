"""Round-robin standings: aggregation, tie-break ordering and competition ranking."""
import random

from blockrank.services.records import MatchRecord, PointValues, TeamRecord, WalkoverGoals
from blockrank.services.standings_calculator import calculate_standings, score_match
from blockrank.services.tiebreak_rules import TieBreakRule, default_tie_break_rules

P, Q, R, S = TeamRecord(1, "P"), TeamRecord(2, "Q"), TeamRecord(3, "R"), TeamRecord(4, "S")

_next_id = iter(range(1, 10_000))


def _m(a, b, a_scores, b_scores, **kwargs):
    return MatchRecord(next(_next_id), a.team_id, b.team_id, a_scores, b_scores, **kwargs)


def _by_name(result):
    return {s.team_name: s for s in result.standings}


def test_pqr_scenario():
    matches = [_m(P, Q, "[2]", "[1]"), _m(P, R, "1", "1"), _m(Q, R, 0, 0)]
    result = calculate_standings([P, Q, R], matches, PointValues(3, 1, 0))

    assert [s.team_name for s in result.standings] == ["P", "R", "Q"]
    table = _by_name(result)
    assert (table["P"].points, table["P"].goal_difference, table["P"].position) == (4, 1, 1)
    assert (table["R"].points, table["R"].goal_difference, table["R"].position) == (2, 0, 2)
    assert (table["Q"].points, table["Q"].goal_difference, table["Q"].position) == (1, -1, 3)
    assert table["P"].wins == 1 and table["P"].draws == 1 and table["P"].losses == 0
    assert result.unresolved_ties == []


def test_every_team_appears_once():
    matches = [_m(P, Q, 3, 0)]
    result = calculate_standings([P, Q, R, S], matches)
    assert len(result.standings) == 4
    assert sorted(s.team_id for s in result.standings) == [1, 2, 3, 4]


def test_team_without_matches_sits_at_position_zero_after_ranked_teams():
    matches = [_m(P, Q, 1, 0)]
    result = calculate_standings([S, R, Q, P], matches)
    assert [(s.team_name, s.position) for s in result.standings] == [("P", 1), ("Q", 2), ("R", 0), ("S", 0)]
    assert result.standings[-1].matches_played == 0


def test_empty_team_set_returns_empty_list():
    result = calculate_standings([], [_m(P, Q, 1, 0)])
    assert result.standings == []
    assert result.unresolved_ties == []


def test_recompute_is_identical():
    matches = [_m(P, Q, "[2,1]", "[0,1]"), _m(P, R, 0, 2), _m(Q, R, "1;1", "2"), _m(R, S, 1, 1)]
    first = calculate_standings([P, Q, R, S], matches).to_snapshot()
    second = calculate_standings([P, Q, R, S], matches).to_snapshot()
    assert first == second


def test_higher_goal_difference_wins_regardless_of_input_order():
    # P and Q both win one match; P by more
    matches = [_m(P, R, 4, 0), _m(Q, S, 1, 0), _m(R, S, 0, 0)]
    teams = [P, Q, R, S]
    for _ in range(5):
        shuffled_teams = random.sample(teams, len(teams))
        shuffled_matches = random.sample(matches, len(matches))
        table = _by_name(calculate_standings(shuffled_teams, shuffled_matches))
        assert table["P"].points == table["Q"].points
        assert table["P"].position < table["Q"].position


def test_three_way_tie_is_followed_by_fourth():
    # P, Q, R each beat one of the others 1-0 and all beat S 1-0
    matches = [
        _m(P, Q, 1, 0),
        _m(Q, R, 1, 0),
        _m(R, P, 1, 0),
        _m(P, S, 1, 0),
        _m(Q, S, 1, 0),
        _m(R, S, 1, 0),
    ]
    result = calculate_standings([P, Q, R, S], matches)
    table = _by_name(result)
    assert table["P"].position == table["Q"].position == table["R"].position == 1
    assert table["S"].position == 4
    assert [s.team_name for s in result.standings[:3]] == ["P", "Q", "R"]
    assert len(result.unresolved_ties) == 1
    assert result.unresolved_ties[0].team_ids == (1, 2, 3)


def test_head_to_head_draw_leaves_unresolved_tie():
    X, Y, Z = TeamRecord(10, "X"), TeamRecord(11, "Y"), TeamRecord(12, "Z")
    matches = [_m(X, Y, 1, 1), _m(X, Z, 2, 0), _m(Y, Z, 2, 0)]
    result = calculate_standings([X, Y, Z], matches, tie_break_rules=default_tie_break_rules("soccer"))

    table = _by_name(result)
    assert table["X"].position == table["Y"].position == 1
    assert table["Z"].position == 3
    assert len(result.unresolved_ties) == 1
    tie = result.unresolved_ties[0]
    assert tie.team_ids == (10, 11)
    assert tie.lottery_required is True


def test_head_to_head_ranks_ahead_of_better_goal_difference():
    # P and Q level on points; Q has the better goal difference but P won their match
    matches = [_m(P, Q, 1, 0), _m(Q, R, 2, 0), _m(R, P, 1, 0), _m(S, R, 0, 0)]
    rules = [TieBreakRule("points", 1), TieBreakRule("head_to_head", 2), TieBreakRule("goal_difference", 3)]
    table = _by_name(calculate_standings([P, Q, R, S], matches, tie_break_rules=rules))
    assert table["P"].points == table["Q"].points == 3
    assert table["Q"].goal_difference > table["P"].goal_difference
    assert table["R"].position == 1
    assert table["P"].position == 2
    assert table["Q"].position == 3


def test_custom_chain_order_is_respected():
    # Q scores more goals but has the worse goal difference
    matches = [_m(P, R, 2, 0), _m(Q, S, 3, 2), _m(R, S, 0, 0)]
    by_goals = [TieBreakRule("points", 1), TieBreakRule("goals_for", 2)]
    by_difference = [TieBreakRule("points", 1), TieBreakRule("goal_difference", 2), TieBreakRule("goals_for", 3)]

    assert _by_name(calculate_standings([P, Q, R, S], matches, tie_break_rules=by_goals))["Q"].position == 1
    assert _by_name(calculate_standings([P, Q, R, S], matches, tie_break_rules=by_difference))["P"].position == 1


def test_walkover_uses_configured_goals():
    match = _m(P, Q, None, None, winner_team_id=Q.team_id, is_walkover=True)
    table = _by_name(calculate_standings([P, Q], [match], walkover_goals=WalkoverGoals(5, 0)))
    assert table["Q"].goals_for == 5
    assert table["Q"].points == 3
    assert table["P"].goal_difference == -5


def test_walkover_without_valid_winner_falls_back_to_scores():
    match = _m(P, Q, 2, 1, is_walkover=True)
    scored = score_match(match, WalkoverGoals())
    assert (scored.goals_a, scored.goals_b) == (2, 1)


def test_draw_flag_wins_over_scores():
    table = _by_name(calculate_standings([P, Q], [_m(P, Q, 3, 0, is_draw=True)]))
    assert table["P"].draws == 1 and table["Q"].draws == 1
    assert table["P"].points == table["Q"].points == 1


def test_winner_id_wins_over_scores():
    # Penalty shoot-out decided: level on goals, winner recorded
    table = _by_name(calculate_standings([P, Q], [_m(P, Q, 1, 1, winner_team_id=Q.team_id)]))
    assert table["Q"].wins == 1
    assert table["P"].losses == 1


def test_matches_against_outside_teams_are_ignored():
    outsider = TeamRecord(99, "Outsider")
    table = _by_name(calculate_standings([P, Q], [_m(P, outsider, 5, 0), _m(P, Q, 0, 1)]))
    assert table["P"].matches_played == 1
    assert table["P"].goals_for == 0


def test_custom_point_values():
    table = _by_name(calculate_standings([P, Q, R], [_m(P, Q, 1, 0), _m(Q, R, 2, 2)], PointValues(2, 1, 0)))
    assert table["P"].points == 2
    assert table["Q"].points == 1


def test_malformed_scores_count_as_zero_goals():
    table = _by_name(calculate_standings([P, Q], [_m(P, Q, "n/a", "[1]")]))
    assert table["P"].goals_for == 0
    assert table["Q"].wins == 1
