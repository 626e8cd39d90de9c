"""
Final placements for the elimination block.

When a bracket match with placement metadata is confirmed, its winner takes
the template's winner_position and its loser takes loser_position_start.
A template spanning several losers (loser_position_end > start) puts every
loser of that round on the same shared position.

Positions an operator set by hand are never overwritten.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlmodel import Session, select

from blockrank.models.match import Match
from blockrank.models.match_template import MatchTemplate
from blockrank.models.team import Team
from blockrank.services.ranking_store import get_block, update_block_rankings
from blockrank.services.records import (
    POSITION_SOURCE_MANUAL,
    POSITION_SOURCE_PLACEMENT,
    TeamRecord,
    TeamStanding,
)

logger = logging.getLogger(__name__)


def is_manual(standing: TeamStanding) -> bool:
    return standing.position_source == POSITION_SOURCE_MANUAL and standing.position > 0


def has_placement(template: Optional[Any]) -> bool:
    return template is not None and (
        template.winner_position is not None or template.loser_position_start is not None
    )


def placement_order(standings: Iterable[TeamStanding]) -> List[TeamStanding]:
    """Placed teams by position then name; unplaced (0) teams last, by name."""
    return sorted(standings, key=lambda s: (s.position <= 0, s.position, s.team_name, s.team_id))


def _ensure_entries(
    standings: List[TeamStanding],
    team_ids: Iterable[Optional[int]],
    teams: Mapping[int, TeamRecord],
) -> Dict[int, TeamStanding]:
    by_id = {s.team_id: s for s in standings}
    for team_id in team_ids:
        if team_id is None or team_id in by_id:
            continue
        record = teams.get(team_id)
        entry = TeamStanding(
            team_id=team_id,
            team_name=record.name if record else str(team_id),
            team_abbreviation=record.abbreviation if record else None,
        )
        standings.append(entry)
        by_id[team_id] = entry
    return by_id


def apply_match_placement(
    standings: Iterable[TeamStanding],
    template: Any,
    winner_id: Optional[int],
    loser_id: Optional[int],
    teams: Mapping[int, TeamRecord],
    block_team_ids: Iterable[int] = (),
) -> List[TeamStanding]:
    """Return a new ranking list with the match's placements applied."""
    updated = [replace(s) for s in standings]
    by_id = _ensure_entries(updated, [*block_team_ids, winner_id, loser_id], teams)

    placements = []
    if winner_id is not None and template.winner_position is not None:
        placements.append((winner_id, template.winner_position))
    if loser_id is not None and template.loser_position_start is not None:
        placements.append((loser_id, template.loser_position_start))

    for team_id, position in placements:
        entry = by_id[team_id]
        if is_manual(entry):
            logger.info(
                "%s: team %s keeps manual position %d (placement %d skipped)",
                template.match_code,
                team_id,
                entry.position,
                position,
            )
            continue
        entry.position = position
        entry.position_source = POSITION_SOURCE_PLACEMENT
        entry.note = template.position_note

    return placement_order(updated)


def clear_placement(
    standings: Iterable[TeamStanding],
    template: Any,
    team_ids: Iterable[Optional[int]],
) -> List[TeamStanding]:
    """Undo placements this template wrote for the given teams."""
    positions = {template.winner_position, template.loser_position_start} - {None}
    targets = {tid for tid in team_ids if tid is not None}
    updated = [replace(s) for s in standings]
    for entry in updated:
        if (
            entry.team_id in targets
            and entry.position_source == POSITION_SOURCE_PLACEMENT
            and entry.position in positions
        ):
            entry.position = 0
            entry.position_source = None
            entry.note = None
    return placement_order(updated)


def get_template(session: Session, tournament_id: int, match_code: str) -> Optional[MatchTemplate]:
    return session.exec(
        select(MatchTemplate).where(
            MatchTemplate.tournament_id == tournament_id,
            MatchTemplate.match_code == match_code,
        )
    ).first()


def _block_team_ids(session: Session, block_id: int) -> List[int]:
    ids = set()
    for m in session.exec(select(Match).where(Match.block_id == block_id)).all():
        ids.update(t for t in (m.team_a_id, m.team_b_id) if t is not None)
    return sorted(ids)


def _team_records(session: Session, tournament_id: int) -> Dict[int, TeamRecord]:
    return {
        t.id: TeamRecord(t.id, t.name, t.abbreviation)
        for t in session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    }


def handle_template_positions(session: Session, match: Match) -> Optional[List[TeamStanding]]:
    """
    Record placements for a confirmed elimination match.

    Returns the new ranking list, or None when the match's block is not an
    elimination block or its template carries no placement metadata.
    """
    block = get_block(session, match.block_id)
    if not block.is_elimination:
        return None
    template = get_template(session, match.tournament_id, match.match_code)
    if not has_placement(template):
        logger.debug("%s has no placement metadata", match.match_code)
        return None

    winner_id = match.winner_team_id
    loser_id = match.loser_team_id()
    teams = _team_records(session, match.tournament_id)
    block_team_ids = _block_team_ids(session, block.id)

    result = update_block_rankings(
        session,
        block.id,
        lambda current: apply_match_placement(current, template, winner_id, loser_id, teams, block_team_ids),
    )
    logger.info(
        "%s placements recorded: winner %s → %s, loser %s → %s",
        match.match_code,
        winner_id,
        template.winner_position,
        loser_id,
        template.loser_position_start,
    )
    return result


def clear_match_placement(session: Session, match: Match) -> Optional[List[TeamStanding]]:
    """Reverse handle_template_positions when an elimination match is un-confirmed."""
    block = get_block(session, match.block_id)
    if not block.is_elimination:
        return None
    template = get_template(session, match.tournament_id, match.match_code)
    if not has_placement(template):
        return None

    team_ids = (match.team_a_id, match.team_b_id)
    result = update_block_rankings(session, block.id, lambda current: clear_placement(current, template, team_ids))
    logger.info("%s placements cleared for teams %s", match.match_code, list(team_ids))
    return result
