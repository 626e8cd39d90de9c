"""Score normalizer: every stored score variant resolves to periods + total without raising."""
import logging

import pytest

from blockrank.services.score_normalizer import (
    ScoreKind,
    classify_score,
    format_score_array,
    format_score_display,
    normalize_score,
    parse_total_score,
)


@pytest.mark.parametrize(
    "raw, periods, kind",
    [
        (3, (3,), ScoreKind.INTEGER),
        (2.0, (2,), ScoreKind.INTEGER),
        ("4", (4,), ScoreKind.INTEGER),
        ("[2,1]", (2, 1), ScoreKind.JSON_ARRAY),
        ("[ 1 , 0 , 2 ]", (1, 0, 2), ScoreKind.JSON_ARRAY),
        ("2,1", (2, 1), ScoreKind.DELIMITED),
        ("2;1", (2, 1), ScoreKind.DELIMITED),
        ("2 1", (2, 1), ScoreKind.DELIMITED),
        ([1, 1, 3], (1, 1, 3), ScoreKind.SEQUENCE),
        ((0, 2), (0, 2), ScoreKind.SEQUENCE),
    ],
)
def test_accepted_variants(raw, periods, kind):
    result = normalize_score(raw)
    assert result.periods == periods
    assert result.total == sum(periods)
    assert result.kind == kind


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_absent_scores_are_single_zero_period(raw):
    result = normalize_score(raw)
    assert result.periods == (0,)
    assert result.total == 0
    assert result.kind == ScoreKind.ABSENT


@pytest.mark.parametrize("raw", ["abc", "{}", "n/a", 1.5, True, object()])
def test_malformed_scores_normalize_to_zero(raw, caplog):
    with caplog.at_level(logging.WARNING, logger="blockrank.services.score_normalizer"):
        result = normalize_score(raw)
    assert result.periods == (0,)
    assert result.total == 0
    assert result.kind == ScoreKind.MALFORMED
    assert any("Malformed score" in r.getMessage() for r in caplog.records)


def test_unreadable_period_values_count_as_zero():
    assert normalize_score('[2, "x", null]').periods == (2, 0, 0)
    assert normalize_score([1, "3", None]).periods == (1, 3, 0)


@pytest.mark.parametrize(
    "raw, periods, kind",
    [
        ("2,x", (2, 0), ScoreKind.DELIMITED),
        ("x;3", (0, 3), ScoreKind.DELIMITED),
        ("[1,2", (0, 2), ScoreKind.DELIMITED),
        ("3.0", (3,), ScoreKind.INTEGER),
        ("2.0,1.0", (2, 1), ScoreKind.DELIMITED),
        ("4pk", (4,), ScoreKind.INTEGER),
    ],
)
def test_only_the_unreadable_period_is_zeroed(raw, periods, kind):
    result = normalize_score(raw)
    assert result.periods == periods
    assert result.total == sum(periods)
    assert result.kind == kind


def test_partially_unreadable_score_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="blockrank.services.score_normalizer"):
        assert parse_total_score("2,x") == 2
    assert any("Malformed score" in r.getMessage() for r in caplog.records)


def test_negative_values_clamp_to_zero():
    assert normalize_score(-2).total == 0
    assert normalize_score("[3,-1]").periods == (3, 0)
    assert normalize_score("-4").total == 0


def test_empty_array_becomes_zero_period():
    assert normalize_score("[]").periods == (0,)
    assert normalize_score([]).periods == (0,)


def test_parse_total_score():
    assert parse_total_score("[2,1]") == 3
    assert parse_total_score("garbage") == 0


def test_canonical_array_round_trip():
    stored = format_score_array("2;1;0")
    assert stored == "[2,1,0]"
    assert normalize_score(stored).periods == (2, 1, 0)


def test_display_form():
    assert format_score_display("[2,1]") == "2-1"
    assert format_score_display(None) == "0"
    assert format_score_display([3, 0], separator=" / ") == "3 / 0"


def test_classify_without_normalizing():
    assert classify_score("[1,0]") == ScoreKind.JSON_ARRAY
    assert classify_score("1;0") == ScoreKind.DELIMITED
    assert classify_score(b"2") == ScoreKind.INTEGER
    assert classify_score(float("nan")) == ScoreKind.MALFORMED
