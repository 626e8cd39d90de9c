"""
Rule configuration per tournament phase: point values, walkover goals and the
tie-break chain. A stored chain that fails validation is rejected and the
default ordering is used instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlmodel import Session, select

from blockrank.models.tournament import Tournament
from blockrank.models.tournament_rules import TournamentRules
from blockrank.services.errors import TournamentNotFound
from blockrank.services.records import PointValues, WalkoverGoals
from blockrank.services.tiebreak_rules import TieBreakRule, parse_tie_break_rules, validate_tie_break_rules

logger = logging.getLogger(__name__)


@dataclass
class RuleConfig:
    sport_code: str
    point_values: PointValues = field(default_factory=PointValues)
    walkover_goals: WalkoverGoals = field(default_factory=WalkoverGoals)
    # Empty means no custom chain: points, goal difference, goals for, name
    tie_break_rules: List[TieBreakRule] = field(default_factory=list)


def get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        raise TournamentNotFound(tournament_id)
    return tournament


def get_rules_row(session: Session, tournament_id: int, phase: str) -> Optional[TournamentRules]:
    return session.exec(
        select(TournamentRules).where(
            TournamentRules.tournament_id == tournament_id,
            TournamentRules.phase == phase,
        )
    ).first()


def load_rule_config(session: Session, tournament_id: int, phase: str = "preliminary") -> RuleConfig:
    tournament = get_tournament(session, tournament_id)

    row = get_rules_row(session, tournament_id, phase)
    if row is None:
        return RuleConfig(sport_code=tournament.sport_code)

    config = RuleConfig(
        sport_code=tournament.sport_code,
        point_values=PointValues(win=row.win_points, draw=row.draw_points, loss=row.loss_points),
        walkover_goals=WalkoverGoals(winner=row.walkover_winner_goals, loser=row.walkover_loser_goals),
    )

    if row.tie_breaking_enabled:
        rules = parse_tie_break_rules(row.tie_breaking_rules)
        validation = validate_tie_break_rules(rules, tournament.sport_code)
        if validation.is_valid:
            config.tie_break_rules = rules
        else:
            logger.warning(
                "Tournament %s (%s) tie-break chain rejected, using default order: %s",
                tournament_id,
                phase,
                "; ".join(validation.errors),
            )

    return config
