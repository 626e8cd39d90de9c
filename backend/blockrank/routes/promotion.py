"""
Bracket promotion API.
Lists slots whose team differs from what their source resolves to, and
applies the safe fixes (unconfirmed matches only).
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from blockrank.database import get_session
from blockrank.services.promotion_validator import FixReport, PromotionPassResult, validate_and_fix, validate_promotions
from blockrank.utils.guards import engine_errors, require_tournament

router = APIRouter()


class PromotionIssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    match_id: int
    match_code: str
    side: str
    expected_team_id: Optional[int] = None
    expected_team_name: Optional[str] = None
    current_team_id: Optional[int] = None
    current_display_name: str
    source: str
    is_placeholder: bool
    severity: str
    message: str
    source_unresolved: bool = False


class MatchFixCountResponse(BaseModel):
    fixed: int
    failed: int


class FixReportResponse(BaseModel):
    fixed: int
    failed: int
    per_match: Dict[str, MatchFixCountResponse]
    failures: List[str]


class PromotionPassResponse(BaseModel):
    issues: List[PromotionIssueResponse]
    fix_report: FixReportResponse


def fix_report_response(report: FixReport) -> FixReportResponse:
    return FixReportResponse(**report.to_dict())


def promotion_pass_response(result: PromotionPassResult) -> PromotionPassResponse:
    return PromotionPassResponse(
        issues=[PromotionIssueResponse.model_validate(i) for i in result.issues],
        fix_report=fix_report_response(result.fix_report),
    )


@router.get("/tournaments/{tournament_id}/promotion/issues", response_model=List[PromotionIssueResponse])
def get_promotion_issues(
    tournament_id: int,
    match_code: Optional[List[str]] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Read-only validation. Repeat match_code to limit the report."""
    require_tournament(session, tournament_id)
    with engine_errors():
        issues = validate_promotions(session, tournament_id, match_code)
    return [PromotionIssueResponse.model_validate(i) for i in issues]


@router.post("/tournaments/{tournament_id}/promotion/fix", response_model=PromotionPassResponse)
def fix_promotion(
    tournament_id: int,
    match_code: Optional[List[str]] = Query(default=None),
    session: Session = Depends(get_session),
):
    """
    Validate and fix. Warnings are written; errors (confirmed matches) are
    only reported and must be corrected by hand.
    """
    require_tournament(session, tournament_id)
    with engine_errors():
        result = validate_and_fix(session, tournament_id, match_code)
    return promotion_pass_response(result)
