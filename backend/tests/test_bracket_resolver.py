"""Symbolic slot sources resolve against block rankings, match results and overrides."""
from blockrank.models.match_override import MatchOverride
from blockrank.models.match_template import MatchTemplate
from blockrank.services.bracket_resolver import (
    KIND_BLOCK_POSITION,
    KIND_MATCH_RESULT,
    BracketResult,
    affected_match_codes,
    match_codes_referencing_block,
    match_codes_referencing_match,
    parse_slot_source,
    resolve_expected_teams,
    unresolved_slots,
)
from blockrank.services.records import TeamStanding


def _tpl(code, a=None, b=None):
    return MatchTemplate(tournament_id=1, match_code=code, team_a_source=a, team_b_source=b)


def _ranking(*entries):
    return [TeamStanding(team_id=tid, team_name=name, position=pos) for tid, name, pos in entries]


TEMPLATES = {
    "M1": _tpl("M1", "A_1", "B_2"),
    "M2": _tpl("M2", "B_1", "A_2"),
    "M3": _tpl("M3", "M1_winner", "M2_winner"),
    "M4": _tpl("M4", "M1_loser", "M2_loser"),
    "M5": _tpl("M5", "M3_winner", "M4_winner"),
}

RANKINGS = {
    "A": _ranking((1, "Alpha", 1), (2, "Bravo", 2), (3, "Charlie", 3)),
    "B": _ranking((4, "Delta", 1), (5, "Echo", 2), (6, "Foxtrot", 3)),
}

NAMES = {1: "Alpha", 2: "Bravo", 3: "Charlie", 4: "Delta", 5: "Echo", 6: "Foxtrot"}


def test_parse_block_position():
    source = parse_slot_source("A_1")
    assert source.kind == KIND_BLOCK_POSITION
    assert (source.block_name, source.position) == ("A", 1)


def test_parse_match_result():
    source = parse_slot_source("M3_winner")
    assert source.kind == KIND_MATCH_RESULT
    assert (source.match_code, source.role) == ("M3", "winner")
    assert parse_slot_source("SF2_Loser").role == "loser"


def test_parse_rejects_other_text():
    for text in (None, "", "Team Alpha", "A1", "_1", "A_", "M3_champion"):
        assert parse_slot_source(text) is None, text


def test_block_positions_resolve_from_latest_ranking():
    expected = resolve_expected_teams(TEMPLATES, {}, RANKINGS, {}, NAMES)
    assert expected[("M1", "a")].team_id == 1
    assert expected[("M1", "b")].team_id == 5
    assert expected[("M2", "a")].team_id == 4
    assert expected[("M2", "b")].team_name == "Bravo"
    # Upstream matches not confirmed yet
    assert ("M3", "a") not in expected
    assert ("M4", "b") not in expected


def test_winner_and_loser_sources_resolve_from_confirmed_results():
    results = {"M1": BracketResult("M1", 1, 5), "M2": BracketResult("M2", 2, 4)}
    expected = resolve_expected_teams(TEMPLATES, {}, RANKINGS, results, NAMES)
    assert expected[("M3", "a")].team_id == 1
    assert expected[("M3", "b")].team_id == 2
    assert expected[("M4", "a")].team_id == 5
    assert expected[("M4", "b")].team_name == "Delta"
    assert ("M5", "a") not in expected


def test_tied_position_resolves_to_nothing():
    rankings = {"A": _ranking((1, "Alpha", 1), (2, "Bravo", 1), (3, "Charlie", 3)), "B": RANKINGS["B"]}
    expected = resolve_expected_teams(TEMPLATES, {}, rankings, {}, NAMES)
    assert ("M1", "a") not in expected
    assert ("M2", "b") not in expected  # nobody holds position 2
    assert expected[("M1", "b")].team_id == 5


def test_missing_block_resolves_to_nothing():
    expected = resolve_expected_teams({"X1": _tpl("X1", "Z_1", "A_3")}, {}, RANKINGS, {}, NAMES)
    assert ("X1", "a") not in expected
    assert expected[("X1", "b")].team_id == 3


def test_unresolved_slots_name_the_source_in_force():
    rankings = {"A": _ranking((1, "Alpha", 1), (2, "Bravo", 1), (3, "Charlie", 3)), "B": RANKINGS["B"]}
    overrides = {"M2": MatchOverride(tournament_id=1, match_code="M2", team_b_source_override="A_1")}
    expected = resolve_expected_teams(TEMPLATES, overrides, rankings, {}, NAMES)

    unresolved = unresolved_slots(TEMPLATES, overrides, expected)

    assert unresolved[("M1", "a")] == "A_1"
    assert unresolved[("M2", "b")] == "A_1"
    assert unresolved[("M3", "a")] == "M1_winner"
    assert ("M1", "b") not in unresolved
    assert ("M2", "a") not in unresolved


def test_override_replaces_only_its_side():
    overrides = {"M1": MatchOverride(tournament_id=1, match_code="M1", team_a_source_override="A_3")}
    expected = resolve_expected_teams(TEMPLATES, overrides, RANKINGS, {}, NAMES)
    assert expected[("M1", "a")].team_id == 3
    assert expected[("M1", "a")].via_override is True
    assert expected[("M1", "b")].team_id == 5
    assert expected[("M1", "b")].via_override is False


def test_codes_referencing_block_follow_overrides():
    overrides = {"M2": MatchOverride(tournament_id=1, match_code="M2", team_b_source_override="B_3")}
    assert match_codes_referencing_block(TEMPLATES, {}, "A") == {"M1", "M2"}
    assert match_codes_referencing_block(TEMPLATES, overrides, "A") == {"M1"}


def test_codes_referencing_match():
    assert match_codes_referencing_match(TEMPLATES, {}, "M1") == {"M3", "M4"}
    assert match_codes_referencing_match(TEMPLATES, {}, "M5") == set()


def test_affected_codes_are_transitive():
    assert affected_match_codes(TEMPLATES, {}, "M1") == ["M1", "M3", "M4", "M5"]
    assert affected_match_codes(TEMPLATES, {}, "M5") == ["M5"]
