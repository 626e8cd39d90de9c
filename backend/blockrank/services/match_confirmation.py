"""
Confirmation orchestration.

Confirming (or un-confirming) a match drives the whole data flow:

  preliminary block: recompute the block's standings → re-validate every
                     bracket slot that references the block
  elimination block: record final placements → re-validate every slot
                     sourced from this match's winner/loser

Everything runs synchronously inside the caller's request.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlmodel import Session, select

from blockrank.models.match import STATUS_CANCELLED, STATUS_COMPLETED, Match
from blockrank.models.match_block import PHASE_FINAL, MatchBlock
from blockrank.models.team import Team
from blockrank.services.bracket_resolver import match_codes_referencing_block, match_codes_referencing_match
from blockrank.services.errors import BlockPhaseMismatch, InvalidMatchState, InvalidRankingEntry, MatchNotFound
from blockrank.services.notifications import (
    TIE_REQUIRES_MANUAL_RESOLUTION,
    CollectingNotificationSink,
    LoggingNotificationSink,
    NotificationSink,
    TieRequiresManualResolution,
)
from blockrank.services.position_assignment import (
    clear_match_placement,
    handle_template_positions,
    placement_order,
)
from blockrank.services.promotion_validator import PromotionPassResult, load_slot_sources, validate_and_fix
from blockrank.services.ranking_store import get_block, update_block_rankings
from blockrank.services.records import POSITION_SOURCE_MANUAL, MatchRecord, TeamRecord, TeamStanding
from blockrank.services.rule_config import get_tournament, load_rule_config
from blockrank.services.score_normalizer import format_score_array, parse_total_score
from blockrank.services.standings_calculator import StandingsResult, calculate_standings
from blockrank.utils.clock import utc_now

logger = logging.getLogger(__name__)


@dataclass
class MatchResultInput:
    """Result fields a scorekeeper may submit together with the confirmation."""

    team_a_scores: Any = None
    team_b_scores: Any = None
    winner_team_id: Optional[int] = None
    is_draw: Optional[bool] = None
    is_walkover: Optional[bool] = None


@dataclass
class ConfirmationOutcome:
    match_id: int
    match_code: str
    block_id: int
    is_confirmed: bool
    standings: Optional[List[TeamStanding]] = None
    placements: Optional[List[TeamStanding]] = None
    promotion: Optional[PromotionPassResult] = None
    tie_events: List[TieRequiresManualResolution] = field(default_factory=list)


def get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if match is None:
        raise MatchNotFound(match_id)
    return match


def block_teams(session: Session, block_id: int) -> List[TeamRecord]:
    teams = session.exec(select(Team).where(Team.assigned_block_id == block_id).order_by(Team.id)).all()
    return [TeamRecord(t.id, t.name, t.abbreviation) for t in teams]


def counted_matches(session: Session, block_id: int) -> List[MatchRecord]:
    """Confirmed matches of the block; cancelled ones count only as walkovers."""
    rows = session.exec(
        select(Match)
        .where(Match.block_id == block_id, Match.is_confirmed == True)  # noqa: E712
        .order_by(Match.id)
    ).all()
    records = []
    for m in rows:
        if m.status == STATUS_CANCELLED and not m.is_walkover:
            continue
        if m.team_a_id is None or m.team_b_id is None:
            continue
        records.append(
            MatchRecord(
                match_id=m.id,
                team_a_id=m.team_a_id,
                team_b_id=m.team_b_id,
                team_a_scores=m.team_a_scores,
                team_b_scores=m.team_b_scores,
                winner_team_id=m.winner_team_id,
                is_draw=m.is_draw,
                is_walkover=m.is_walkover,
            )
        )
    return records


def _tie_events(
    block: MatchBlock, result: StandingsResult, chain_exhausted: bool
) -> List[TieRequiresManualResolution]:
    positions = {s.team_id: s.position for s in result.standings}
    return [
        TieRequiresManualResolution(
            block_id=block.id,
            block_name=block.block_name,
            team_ids=tie.team_ids,
            position=positions.get(tie.team_ids[0], 0),
            chain_exhausted=chain_exhausted,
            lottery_required=tie.lottery_required,
        )
        for tie in result.unresolved_ties
    ]


def recalculate_block_standings(
    session: Session,
    block_id: int,
    sink: Optional[NotificationSink] = None,
) -> StandingsResult:
    """Recompute and store a round-robin block's full ranking."""
    block = get_block(session, block_id)
    if block.is_elimination:
        raise BlockPhaseMismatch(f"Block {block.block_name} is an elimination block; its ranking comes from placements")

    config = load_rule_config(session, block.tournament_id, block.phase)
    teams = block_teams(session, block_id)
    computed: Dict[str, StandingsResult] = {}

    def recompute(_current: List[TeamStanding]) -> List[TeamStanding]:
        # Inputs are re-read on every attempt so a retry sees the winning writer's matches
        result = calculate_standings(
            teams,
            counted_matches(session, block_id),
            point_values=config.point_values,
            walkover_goals=config.walkover_goals,
            tie_break_rules=config.tie_break_rules,
        )
        computed["result"] = result
        return result.standings

    update_block_rankings(session, block_id, recompute)
    result = computed["result"]

    sink = sink or LoggingNotificationSink()
    # A custom chain ran to its end; without one only the default order applied
    for event in _tie_events(block, result, chain_exhausted=bool(config.tie_break_rules)):
        sink.emit(event)

    logger.info(
        "Block %s standings recalculated: %d teams, %d unresolved tie(s)",
        block.block_name,
        len(result.standings),
        len(result.unresolved_ties),
    )
    return result


def promote_from_block(session: Session, block: MatchBlock, sink: NotificationSink) -> PromotionPassResult:
    """Promotion pass over every bracket slot that references the block."""
    templates, overrides = load_slot_sources(session, block.tournament_id)
    codes = match_codes_referencing_block(templates, overrides, block.block_name)
    return validate_and_fix(session, block.tournament_id, sorted(codes), sink)


def recalculate_and_promote(
    session: Session,
    block_id: int,
    sink: Optional[NotificationSink] = None,
) -> Tuple[StandingsResult, PromotionPassResult]:
    sink = sink or LoggingNotificationSink()
    result = recalculate_block_standings(session, block_id, sink)
    return result, promote_from_block(session, get_block(session, block_id), sink)


def _apply_result(match: Match, result: MatchResultInput) -> None:
    if result.team_a_scores is not None:
        match.team_a_scores = format_score_array(result.team_a_scores)
    if result.team_b_scores is not None:
        match.team_b_scores = format_score_array(result.team_b_scores)
    if result.is_walkover is not None:
        match.is_walkover = result.is_walkover
    if result.is_draw is not None:
        match.is_draw = result.is_draw
    if result.winner_team_id is not None:
        match.winner_team_id = result.winner_team_id


def _settle_outcome(match: Match, elimination: bool) -> None:
    """Fill in winner/draw from the scores when the scorekeeper gave neither."""
    if match.winner_team_id is not None:
        if match.winner_team_id not in (match.team_a_id, match.team_b_id):
            raise InvalidMatchState(f"Winner {match.winner_team_id} did not play {match.match_code}")
        match.is_draw = False
        return
    if match.is_draw:
        if elimination:
            raise InvalidMatchState(f"Elimination match {match.match_code} cannot end in a draw")
        return

    total_a = parse_total_score(match.team_a_scores)
    total_b = parse_total_score(match.team_b_scores)
    if total_a == total_b:
        if elimination:
            raise InvalidMatchState(f"Elimination match {match.match_code} is level {total_a}-{total_b}; a winner is required")
        match.is_draw = True
    else:
        match.winner_team_id = match.team_a_id if total_a > total_b else match.team_b_id


def _propagate(session: Session, match: Match, sink: NotificationSink) -> ConfirmationOutcome:
    block = get_block(session, match.block_id)
    outcome = ConfirmationOutcome(
        match_id=match.id,
        match_code=match.match_code,
        block_id=block.id,
        is_confirmed=match.is_confirmed,
    )
    if block.is_elimination:
        if match.is_confirmed:
            outcome.placements = handle_template_positions(session, match)
        templates, overrides = load_slot_sources(session, match.tournament_id)
        codes = match_codes_referencing_match(templates, overrides, match.match_code)
        outcome.promotion = validate_and_fix(session, match.tournament_id, sorted(codes), sink)
    else:
        collecting = CollectingNotificationSink(forward_to=sink)
        result = recalculate_block_standings(session, block.id, collecting)
        outcome.standings = result.standings
        outcome.tie_events = collecting.of_type(TIE_REQUIRES_MANUAL_RESOLUTION)
        outcome.promotion = promote_from_block(session, block, sink)
    return outcome


def confirm_match(
    session: Session,
    match_id: int,
    result: Optional[MatchResultInput] = None,
    sink: Optional[NotificationSink] = None,
) -> ConfirmationOutcome:
    match = get_match(session, match_id)
    if match.is_confirmed:
        raise InvalidMatchState(f"Match {match.match_code} is already confirmed")
    if match.team_a_id is None or match.team_b_id is None:
        raise InvalidMatchState(f"Match {match.match_code} has an unresolved side and cannot be confirmed")

    block = get_block(session, match.block_id)
    try:
        if result is not None:
            _apply_result(match, result)
        _settle_outcome(match, block.is_elimination)
    except InvalidMatchState:
        session.rollback()
        raise

    match.is_confirmed = True
    match.confirmed_at = utc_now()
    if match.status != STATUS_CANCELLED:
        match.status = STATUS_COMPLETED
    session.add(match)
    session.commit()
    session.refresh(match)
    logger.info("Match %s confirmed (winner %s, draw %s)", match.match_code, match.winner_team_id, match.is_draw)

    return _propagate(session, match, sink or LoggingNotificationSink())


def unconfirm_match(
    session: Session,
    match_id: int,
    sink: Optional[NotificationSink] = None,
) -> ConfirmationOutcome:
    """Reopen a confirmed match; its result stays recorded but stops counting."""
    match = get_match(session, match_id)
    if not match.is_confirmed:
        raise InvalidMatchState(f"Match {match.match_code} is not confirmed")

    block = get_block(session, match.block_id)
    if block.is_elimination:
        clear_match_placement(session, match)

    match.is_confirmed = False
    match.confirmed_at = None
    session.add(match)
    session.commit()
    session.refresh(match)
    logger.info("Match %s un-confirmed", match.match_code)

    return _propagate(session, match, sink or LoggingNotificationSink())


def set_manual_rankings(
    session: Session,
    block_id: int,
    positions: Mapping[int, int],
    note: Optional[str] = None,
    sink: Optional[NotificationSink] = None,
) -> List[TeamStanding]:
    """
    Operator override of positions (team id → position; 0 clears).

    Entries set here are marked manual and survive automatic placement.
    A recompute of a round-robin block rebuilds the list from results.
    """
    block = get_block(session, block_id)
    if any(p < 0 for p in positions.values()):
        raise InvalidRankingEntry("Positions must be 0 or greater")

    teams = {t.id: t for t in session.exec(select(Team).where(Team.tournament_id == block.tournament_id)).all()}

    def apply(current: List[TeamStanding]) -> List[TeamStanding]:
        by_id = {s.team_id: s for s in current}
        for team_id in positions:
            if team_id in by_id:
                continue
            team = teams.get(team_id)
            if team is None or (not block.is_elimination and team.assigned_block_id != block.id):
                raise InvalidRankingEntry(f"Team {team_id} is not part of block {block.block_name}")
            entry = TeamStanding(team_id=team.id, team_name=team.name, team_abbreviation=team.abbreviation)
            current.append(entry)
            by_id[team_id] = entry

        for team_id, position in positions.items():
            entry = by_id[team_id]
            entry.position = position
            entry.position_source = POSITION_SOURCE_MANUAL if position > 0 else None
            entry.note = note if position > 0 else None
        return placement_order(current)

    updated = update_block_rankings(session, block_id, apply)
    logger.info("Block %s: manual positions set for %s", block.block_name, sorted(positions))

    if not block.is_elimination:
        promote_from_block(session, block, sink or LoggingNotificationSink())
    return updated


def recalculate_all(
    session: Session,
    tournament_id: int,
    sink: Optional[NotificationSink] = None,
) -> Dict[str, Any]:
    """Recompute every round-robin block, then run one full promotion pass."""
    get_tournament(session, tournament_id)
    sink = sink or LoggingNotificationSink()

    blocks = session.exec(
        select(MatchBlock)
        .where(MatchBlock.tournament_id == tournament_id, MatchBlock.phase != PHASE_FINAL)
        .order_by(MatchBlock.block_name)
    ).all()

    unresolved = 0
    for block in blocks:
        unresolved += len(recalculate_block_standings(session, block.id, sink).unresolved_ties)

    promotion = validate_and_fix(session, tournament_id, None, sink)
    return {
        "blocks_recalculated": len(blocks),
        "unresolved_ties": unresolved,
        "issues": len(promotion.issues),
        "errors": len(promotion.errors),
        "fixed": promotion.fix_report.fixed,
        "failed": promotion.fix_report.failed,
    }
