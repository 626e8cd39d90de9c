"""
Rule configuration API: point values, walkover goals and the tie-break chain
per tournament phase.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from blockrank.database import get_session
from blockrank.models.tournament_rules import TournamentRules
from blockrank.services.rule_config import get_rules_row
from blockrank.services.tiebreak_rules import (
    TieBreakRule,
    available_criteria,
    criterion_label,
    default_tie_break_rules,
    parse_tie_break_rules,
    requires_lottery,
    stringify_tie_break_rules,
    validate_tie_break_rules,
)
from blockrank.utils.guards import require_tournament

router = APIRouter()


class TieBreakRuleModel(BaseModel):
    type: str
    order: int


class CriterionOption(BaseModel):
    type: str
    label: str


class TieBreakRulesRequest(BaseModel):
    rules: List[TieBreakRuleModel]
    enabled: bool = True
    win_points: Optional[int] = None
    draw_points: Optional[int] = None
    loss_points: Optional[int] = None
    walkover_winner_goals: Optional[int] = None
    walkover_loser_goals: Optional[int] = None


class TieBreakRulesResponse(BaseModel):
    tournament_id: int
    phase: str
    sport_code: str
    enabled: bool
    rules: List[TieBreakRuleModel]
    requires_lottery: bool
    available_criteria: List[CriterionOption]
    win_points: int
    draw_points: int
    loss_points: int
    walkover_winner_goals: int
    walkover_loser_goals: int


def _response(tournament_id: int, phase: str, sport_code: str, row: Optional[TournamentRules]) -> TieBreakRulesResponse:
    defaults = TournamentRules(tournament_id=tournament_id, phase=phase)
    source = row or defaults
    rules = parse_tie_break_rules(source.tie_breaking_rules) or default_tie_break_rules(sport_code)
    return TieBreakRulesResponse(
        tournament_id=tournament_id,
        phase=phase,
        sport_code=sport_code,
        enabled=source.tie_breaking_enabled,
        rules=[TieBreakRuleModel(**r.to_dict()) for r in rules],
        requires_lottery=requires_lottery(rules),
        available_criteria=[CriterionOption(type=c, label=criterion_label(c)) for c in available_criteria(sport_code)],
        win_points=source.win_points,
        draw_points=source.draw_points,
        loss_points=source.loss_points,
        walkover_winner_goals=source.walkover_winner_goals,
        walkover_loser_goals=source.walkover_loser_goals,
    )


@router.get("/tournaments/{tournament_id}/tie-break-rules", response_model=TieBreakRulesResponse)
def get_tie_break_rules(
    tournament_id: int,
    phase: str = Query(default="preliminary"),
    session: Session = Depends(get_session),
):
    """Stored configuration, or the sport's defaults when nothing is stored."""
    tournament = require_tournament(session, tournament_id)
    return _response(tournament_id, phase, tournament.sport_code, get_rules_row(session, tournament_id, phase))


@router.put("/tournaments/{tournament_id}/tie-break-rules", response_model=TieBreakRulesResponse)
def put_tie_break_rules(
    tournament_id: int,
    request: TieBreakRulesRequest,
    phase: str = Query(default="preliminary"),
    session: Session = Depends(get_session),
):
    """
    Replace the chain (and optionally point values) for a phase.

    Raises 422 with every validation failure when the chain is invalid.
    Stored standings are not recomputed here; call recalculate afterwards.
    """
    tournament = require_tournament(session, tournament_id)

    rules = [TieBreakRule(type=r.type, order=r.order) for r in request.rules]
    validation = validate_tie_break_rules(rules, tournament.sport_code)
    if not validation.is_valid:
        raise HTTPException(status_code=422, detail={"errors": validation.errors})

    row = get_rules_row(session, tournament_id, phase)
    if row is None:
        row = TournamentRules(tournament_id=tournament_id, phase=phase)

    row.tie_breaking_rules = stringify_tie_break_rules(rules)
    row.tie_breaking_enabled = request.enabled
    for name in ("win_points", "draw_points", "loss_points", "walkover_winner_goals", "walkover_loser_goals"):
        value = getattr(request, name)
        if value is not None:
            setattr(row, name, value)

    session.add(row)
    session.commit()
    session.refresh(row)
    return _response(tournament_id, phase, tournament.sport_code, row)
