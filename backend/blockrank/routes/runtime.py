"""
Match runtime: confirmation of results.
Confirming or reopening a match recomputes its block and re-validates the
bracket slots that depend on it, inside the same request.
"""
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from blockrank.database import get_session
from blockrank.models.match import Match
from blockrank.routes.promotion import PromotionPassResponse, promotion_pass_response
from blockrank.routes.standings import TeamStandingResponse, standings_response
from blockrank.services.match_confirmation import (
    ConfirmationOutcome,
    MatchResultInput,
    confirm_match,
    unconfirm_match,
)
from blockrank.services.notifications import CollectingNotificationSink, LoggingNotificationSink, event_to_dict
from blockrank.utils.guards import engine_errors, require_match

router = APIRouter()


class MatchConfirmRequest(BaseModel):
    team_a_scores: Optional[Any] = None
    team_b_scores: Optional[Any] = None
    winner_team_id: Optional[int] = None
    is_draw: Optional[bool] = None
    is_walkover: Optional[bool] = None


class MatchState(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    block_id: int
    match_code: str
    team_a_id: Optional[int] = None
    team_b_id: Optional[int] = None
    team_a_display_name: str
    team_b_display_name: str
    team_a_scores: Optional[str] = None
    team_b_scores: Optional[str] = None
    status: str
    is_confirmed: bool
    is_draw: bool
    is_walkover: bool
    winner_team_id: Optional[int] = None
    confirmed_at: Optional[datetime] = None


class MatchConfirmationResponse(BaseModel):
    match: MatchState
    standings: Optional[List[TeamStandingResponse]] = None
    placements: Optional[List[TeamStandingResponse]] = None
    promotion: Optional[PromotionPassResponse] = None
    events: List[dict] = []


def _response(session: Session, outcome: ConfirmationOutcome, sink: CollectingNotificationSink) -> MatchConfirmationResponse:
    match = session.get(Match, outcome.match_id)
    return MatchConfirmationResponse(
        match=MatchState.model_validate(match),
        standings=standings_response(outcome.standings) if outcome.standings is not None else None,
        placements=standings_response(outcome.placements) if outcome.placements is not None else None,
        promotion=promotion_pass_response(outcome.promotion) if outcome.promotion is not None else None,
        events=[event_to_dict(e) for e in sink.events],
    )


@router.get("/matches/{match_id}", response_model=MatchState)
def get_match_state(match_id: int, session: Session = Depends(get_session)):
    return require_match(session, match_id)


@router.post("/matches/{match_id}/confirm", response_model=MatchConfirmationResponse)
def confirm(
    match_id: int,
    payload: Optional[MatchConfirmRequest] = None,
    session: Session = Depends(get_session),
):
    """
    Confirm a match result (optionally submitting scores/winner with it).

    Without a winner or draw flag the outcome is read from the score totals.
    Elimination matches need a winner.
    """
    require_match(session, match_id)
    sink = CollectingNotificationSink(forward_to=LoggingNotificationSink())
    result = MatchResultInput(**payload.model_dump()) if payload is not None else None
    with engine_errors():
        outcome = confirm_match(session, match_id, result, sink)
    return _response(session, outcome, sink)


@router.post("/matches/{match_id}/unconfirm", response_model=MatchConfirmationResponse)
def unconfirm(match_id: int, session: Session = Depends(get_session)):
    """Reopen a confirmed match. Its result stops counting and placements it wrote are cleared."""
    require_match(session, match_id)
    sink = CollectingNotificationSink(forward_to=LoggingNotificationSink())
    with engine_errors():
        outcome = unconfirm_match(session, match_id, sink)
    return _response(session, outcome, sink)
