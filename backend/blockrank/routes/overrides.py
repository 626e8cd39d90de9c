"""
Match override API.
Each change re-runs the promotion pass for the matches it can affect and
returns that pass with the override.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from blockrank.database import get_session
from blockrank.routes.promotion import PromotionPassResponse, promotion_pass_response
from blockrank.services import override_service
from blockrank.services.override_service import OverrideChange
from blockrank.utils.guards import engine_errors

router = APIRouter()


class OverrideCreateRequest(BaseModel):
    match_code: str
    team_a_source_override: Optional[str] = None
    team_b_source_override: Optional[str] = None
    override_reason: Optional[str] = None
    overridden_by: Optional[str] = None


class OverrideUpdateRequest(BaseModel):
    team_a_source_override: Optional[str] = None
    team_b_source_override: Optional[str] = None
    override_reason: Optional[str] = None
    overridden_by: Optional[str] = None


class OverrideResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    match_code: str
    team_a_source_override: Optional[str] = None
    team_b_source_override: Optional[str] = None
    override_reason: Optional[str] = None
    overridden_by: Optional[str] = None
    overridden_at: datetime


class OverrideChangeResponse(BaseModel):
    override: Optional[OverrideResponse] = None
    affected_match_codes: List[str]
    promotion: PromotionPassResponse


def _change_response(change: OverrideChange) -> OverrideChangeResponse:
    return OverrideChangeResponse(
        override=OverrideResponse.model_validate(change.override) if change.override is not None else None,
        affected_match_codes=change.affected_match_codes,
        promotion=promotion_pass_response(change.promotion),
    )


@router.get("/tournaments/{tournament_id}/match-overrides", response_model=List[OverrideResponse])
def list_match_overrides(tournament_id: int, session: Session = Depends(get_session)):
    with engine_errors():
        return override_service.list_overrides(session, tournament_id)


@router.post("/tournaments/{tournament_id}/match-overrides", response_model=OverrideChangeResponse, status_code=201)
def create_match_override(tournament_id: int, request: OverrideCreateRequest, session: Session = Depends(get_session)):
    with engine_errors():
        change = override_service.create_override(
            session,
            tournament_id,
            request.match_code,
            team_a_source=request.team_a_source_override,
            team_b_source=request.team_b_source_override,
            reason=request.override_reason,
            overridden_by=request.overridden_by,
        )
    return _change_response(change)


@router.put("/tournaments/{tournament_id}/match-overrides/{override_id}", response_model=OverrideChangeResponse)
def update_match_override(
    tournament_id: int,
    override_id: int,
    request: OverrideUpdateRequest,
    session: Session = Depends(get_session),
):
    with engine_errors():
        change = override_service.update_override(
            session,
            tournament_id,
            override_id,
            team_a_source=request.team_a_source_override,
            team_b_source=request.team_b_source_override,
            reason=request.override_reason,
            overridden_by=request.overridden_by,
        )
    return _change_response(change)


@router.delete("/tournaments/{tournament_id}/match-overrides/{override_id}", response_model=OverrideChangeResponse)
def delete_match_override(tournament_id: int, override_id: int, session: Session = Depends(get_session)):
    """Remove an override; the match falls back to its template sources."""
    with engine_errors():
        change = override_service.delete_override(session, tournament_id, override_id)
    return _change_response(change)
