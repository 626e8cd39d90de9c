"""
HTTP guards.

Routes call the engine inside engine_errors() so structural faults come back
as HTTP errors:
- unknown tournament / block / match / override → 404
- a ranking write that kept losing the race → 409
- an operation that does not apply to the record as it stands → 400
"""
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException
from sqlmodel import Session

from blockrank.models.match import Match
from blockrank.models.match_block import MatchBlock
from blockrank.models.tournament import Tournament
from blockrank.services.errors import (
    BlockPhaseMismatch,
    EngineLookupError,
    InvalidMatchState,
    InvalidOverride,
    InvalidRankingEntry,
    StaleRankingSnapshot,
)


@contextmanager
def engine_errors() -> Iterator[None]:
    try:
        yield
    except EngineLookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StaleRankingSnapshot as exc:
        raise HTTPException(
            status_code=409,
            detail=f"RANKING_SNAPSHOT_CONFLICT: {exc}. Retry the request.",
        ) from exc
    except (InvalidMatchState, BlockPhaseMismatch, InvalidRankingEntry, InvalidOverride) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def require_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def require_block(session: Session, block_id: int, tournament_id: int = None) -> MatchBlock:
    """
    Require that a block exists (and belongs to tournament_id when given).

    Raises:
        HTTPException 404: Block not found or owned by another tournament
    """
    block = session.get(MatchBlock, block_id)
    if not block:
        raise HTTPException(status_code=404, detail="Block not found")
    if tournament_id and block.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail=f"Block {block_id} does not belong to tournament {tournament_id}")
    return block


def require_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    return match
