"""
Ranking snapshot store.

A block's ranking is one JSON document replaced as a whole. Writers carry the
version they read; a replace whose version no longer matches fails with
StaleRankingSnapshot instead of silently overwriting a concurrent write.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy import update as sa_update
from sqlmodel import Session

from blockrank.models.match_block import MatchBlock
from blockrank.services.errors import BlockNotFound, StaleRankingSnapshot
from blockrank.services.records import TeamStanding
from blockrank.utils.clock import utc_now

logger = logging.getLogger(__name__)

RANKING_WRITE_RETRIES = int(os.getenv("RANKING_WRITE_RETRIES", "3"))


@dataclass
class RankingSnapshot:
    block_id: int
    version: int
    standings: List[TeamStanding]


def get_block(session: Session, block_id: int) -> MatchBlock:
    block = session.get(MatchBlock, block_id)
    if block is None:
        raise BlockNotFound(block_id)
    return block


def read_block_rankings(session: Session, block_id: int) -> RankingSnapshot:
    """Read the stored snapshot and the version it was read at."""
    block = get_block(session, block_id)
    session.refresh(block)
    standings = [TeamStanding.from_dict(row) for row in (block.team_rankings or [])]
    return RankingSnapshot(block_id=block_id, version=block.rankings_version, standings=standings)


def replace_block_rankings(
    session: Session,
    block_id: int,
    standings: List[TeamStanding],
    expected_version: int,
) -> int:
    """
    Replace the whole snapshot if it is still at expected_version.

    Returns the new version. Raises StaleRankingSnapshot when another writer
    got there first; nothing is written in that case.
    """
    stmt = (
        sa_update(MatchBlock)
        .where(MatchBlock.id == block_id, MatchBlock.rankings_version == expected_version)
        .values(
            team_rankings=[s.to_dict() for s in standings],
            rankings_version=expected_version + 1,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount == 0:
        session.rollback()
        block = get_block(session, block_id)
        raise StaleRankingSnapshot(block_id, expected_version, block.rankings_version)

    session.commit()
    logger.info(
        "Block %s ranking snapshot replaced (%d teams, version %d)",
        block_id,
        len(standings),
        expected_version + 1,
    )
    return expected_version + 1


def update_block_rankings(
    session: Session,
    block_id: int,
    mutate: Callable[[List[TeamStanding]], List[TeamStanding]],
    attempts: int = RANKING_WRITE_RETRIES,
) -> List[TeamStanding]:
    """
    Read-modify-write the snapshot, retrying when a concurrent write wins.

    mutate receives the current standings and returns the full new list; it
    is called again on every retry.
    """
    last_error: Optional[StaleRankingSnapshot] = None
    attempts = max(attempts, 1)
    for attempt in range(1, attempts + 1):
        snapshot = read_block_rankings(session, block_id)
        new_standings = mutate(snapshot.standings)
        try:
            replace_block_rankings(session, block_id, new_standings, snapshot.version)
            return new_standings
        except StaleRankingSnapshot as exc:
            last_error = exc
            logger.warning("Ranking write conflict on block %s (attempt %d/%d)", block_id, attempt, attempts)
    raise last_error
