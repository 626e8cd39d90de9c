"""
Block standings API.
Reads the stored ranking snapshot, forces a recompute, and lets an operator
set positions by hand (ties the chain could not break).
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session

from blockrank.database import get_session
from blockrank.services.match_confirmation import recalculate_all, recalculate_and_promote, set_manual_rankings
from blockrank.services.ranking_store import read_block_rankings
from blockrank.services.records import TeamStanding
from blockrank.utils.guards import engine_errors, require_block, require_tournament

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TeamStandingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_id: int
    team_name: str
    team_abbreviation: Optional[str] = None
    points: int
    matches_played: int
    wins: int
    draws: int
    losses: int
    goals_for: int
    goals_against: int
    goal_difference: int
    position: int
    position_source: Optional[str] = None
    note: Optional[str] = None


class UnresolvedTieResponse(BaseModel):
    team_ids: List[int]
    lottery_required: bool


class BlockStandingsResponse(BaseModel):
    block_id: int
    block_name: str
    phase: str
    rankings_version: int
    standings: List[TeamStandingResponse]
    unresolved_ties: List[UnresolvedTieResponse] = Field(default_factory=list)


class ManualRankingEntry(BaseModel):
    team_id: int
    position: int = Field(ge=0)


class ManualRankingsRequest(BaseModel):
    rankings: List[ManualRankingEntry]
    note: Optional[str] = None


def standings_response(standings: List[TeamStanding]) -> List[TeamStandingResponse]:
    return [TeamStandingResponse.model_validate(s) for s in standings]


def _block_response(session: Session, block_id: int, unresolved=()) -> BlockStandingsResponse:
    block = require_block(session, block_id)
    snapshot = read_block_rankings(session, block_id)
    return BlockStandingsResponse(
        block_id=block.id,
        block_name=block.block_name,
        phase=block.phase,
        rankings_version=snapshot.version,
        standings=standings_response(snapshot.standings),
        unresolved_ties=[
            UnresolvedTieResponse(team_ids=list(t.team_ids), lottery_required=t.lottery_required) for t in unresolved
        ],
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/blocks/{block_id}/standings", response_model=BlockStandingsResponse)
def get_block_standings(block_id: int, session: Session = Depends(get_session)):
    """Stored ranking snapshot of a block, in position order."""
    return _block_response(session, block_id)


@router.post("/blocks/{block_id}/recalculate", response_model=BlockStandingsResponse)
def recalculate_block(block_id: int, session: Session = Depends(get_session)):
    """
    Recompute a round-robin block from its confirmed matches.

    Also re-validates the bracket slots that reference the block.
    Elimination blocks answer 400: their ranking comes from placements.
    """
    require_block(session, block_id)
    with engine_errors():
        result, _ = recalculate_and_promote(session, block_id)
    return _block_response(session, block_id, result.unresolved_ties)


@router.put("/blocks/{block_id}/manual-rankings", response_model=BlockStandingsResponse)
def put_manual_rankings(block_id: int, request: ManualRankingsRequest, session: Session = Depends(get_session)):
    """
    Set positions by hand. Entries become `manual` and are never overwritten
    by automatic placement; position 0 clears a team's position.
    """
    require_block(session, block_id)
    positions: Dict[int, int] = {entry.team_id: entry.position for entry in request.rankings}
    with engine_errors():
        set_manual_rankings(session, block_id, positions, note=request.note)
    return _block_response(session, block_id)


@router.post("/tournaments/{tournament_id}/recalculate")
def recalculate_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Recompute every round-robin block and run one full promotion pass."""
    require_tournament(session, tournament_id)
    with engine_errors():
        return recalculate_all(session, tournament_id)
