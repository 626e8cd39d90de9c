"""Ranking snapshot store: whole-list replace guarded by rankings_version."""
import pytest
from sqlmodel import Session

from blockrank.services.errors import BlockNotFound, StaleRankingSnapshot
from blockrank.services.ranking_store import read_block_rankings, replace_block_rankings, update_block_rankings
from blockrank.services.records import TeamStanding
from tests.factories import make_block, make_tournament


def _standing(team_id, position):
    return TeamStanding(team_id=team_id, team_name=f"Team {team_id}", position=position)


@pytest.fixture
def block(session: Session):
    return make_block(session, make_tournament(session), "A")


def test_new_block_starts_empty(session: Session, block):
    snapshot = read_block_rankings(session, block.id)
    assert snapshot.version == 0
    assert snapshot.standings == []


def test_replace_bumps_version_and_stores_list(session: Session, block):
    new_version = replace_block_rankings(session, block.id, [_standing(1, 1), _standing(2, 2)], 0)
    assert new_version == 1

    snapshot = read_block_rankings(session, block.id)
    assert snapshot.version == 1
    assert [(s.team_id, s.position) for s in snapshot.standings] == [(1, 1), (2, 2)]


def test_write_from_stale_read_is_rejected(session: Session, block):
    read_at = read_block_rankings(session, block.id).version
    replace_block_rankings(session, block.id, [_standing(1, 1)], read_at)

    with pytest.raises(StaleRankingSnapshot) as exc_info:
        replace_block_rankings(session, block.id, [_standing(2, 1)], read_at)

    assert exc_info.value.expected_version == 0
    assert exc_info.value.actual_version == 1
    # The losing write left nothing behind
    assert [s.team_id for s in read_block_rankings(session, block.id).standings] == [1]


def test_update_retries_after_a_concurrent_write(session: Session, block):
    calls = []

    def mutate(current):
        calls.append(len(current))
        if len(calls) == 1:
            # Another writer lands between our read and our write
            replace_block_rankings(session, block.id, [_standing(9, 1)], read_block_rankings(session, block.id).version)
        return current + [_standing(len(current) + 1, len(current) + 1)]

    result = update_block_rankings(session, block.id, mutate)

    assert calls == [0, 1]
    snapshot = read_block_rankings(session, block.id)
    assert snapshot.version == 2
    assert [s.team_id for s in snapshot.standings] == [9, 2]
    assert [s.team_id for s in result] == [9, 2]


def test_update_gives_up_after_attempts(session: Session, block):
    def always_raced(current):
        replace_block_rankings(session, block.id, current, read_block_rankings(session, block.id).version)
        return current

    with pytest.raises(StaleRankingSnapshot):
        update_block_rankings(session, block.id, always_raced, attempts=2)


def test_unknown_block(session: Session):
    with pytest.raises(BlockNotFound):
        read_block_rankings(session, 999)
