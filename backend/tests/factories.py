"""Row builders shared by the database-backed tests."""
from typing import List, Optional

from sqlmodel import Session

from blockrank.models.match import STATUS_COMPLETED, STATUS_SCHEDULED, Match
from blockrank.models.match_block import PHASE_FINAL, PHASE_PRELIMINARY, MatchBlock
from blockrank.models.match_template import MatchTemplate
from blockrank.models.team import Team
from blockrank.models.tournament import Tournament


def _save(session: Session, row):
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def make_tournament(session: Session, name: str = "Spring Cup", sport_code: str = "pk_championship") -> Tournament:
    return _save(session, Tournament(name=name, sport_code=sport_code))


def make_block(session: Session, tournament: Tournament, name: str, phase: str = PHASE_PRELIMINARY) -> MatchBlock:
    return _save(session, MatchBlock(tournament_id=tournament.id, block_name=name, phase=phase))


def make_final_block(session: Session, tournament: Tournament) -> MatchBlock:
    return make_block(session, tournament, "final", PHASE_FINAL)


def make_teams(session: Session, tournament: Tournament, block: Optional[MatchBlock], names: List[str]) -> List[Team]:
    return [
        _save(
            session,
            Team(tournament_id=tournament.id, name=name, assigned_block_id=block.id if block else None),
        )
        for name in names
    ]


def make_match(
    session: Session,
    tournament: Tournament,
    block: MatchBlock,
    code: str,
    team_a: Optional[Team] = None,
    team_b: Optional[Team] = None,
    a_scores: Optional[str] = None,
    b_scores: Optional[str] = None,
    confirmed: bool = False,
    winner: Optional[Team] = None,
    is_draw: bool = False,
    display_a: str = "",
    display_b: str = "",
) -> Match:
    return _save(
        session,
        Match(
            tournament_id=tournament.id,
            block_id=block.id,
            match_code=code,
            team_a_id=team_a.id if team_a else None,
            team_b_id=team_b.id if team_b else None,
            team_a_display_name=team_a.name if team_a else display_a,
            team_b_display_name=team_b.name if team_b else display_b,
            team_a_scores=a_scores,
            team_b_scores=b_scores,
            status=STATUS_COMPLETED if confirmed else STATUS_SCHEDULED,
            is_confirmed=confirmed,
            is_draw=is_draw,
            winner_team_id=winner.id if winner else None,
        ),
    )


def make_template(
    session: Session,
    tournament: Tournament,
    code: str,
    a_source: Optional[str] = None,
    b_source: Optional[str] = None,
    **placement,
) -> MatchTemplate:
    return _save(
        session,
        MatchTemplate(
            tournament_id=tournament.id,
            match_code=code,
            team_a_source=a_source,
            team_b_source=b_source,
            team_a_display_name=a_source or "",
            team_b_display_name=b_source or "",
            **placement,
        ),
    )


def make_bracket_slot(
    session: Session,
    tournament: Tournament,
    final_block: MatchBlock,
    code: str,
    a_source: str,
    b_source: str,
    **placement,
) -> Match:
    """Template plus its still-unresolved match (placeholders shown on both sides)."""
    make_template(session, tournament, code, a_source, b_source, **placement)
    return make_match(session, tournament, final_block, code, display_a=a_source, display_b=b_source)
