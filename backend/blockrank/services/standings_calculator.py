"""
Round-robin block standings.

Aggregates win/draw/loss and goals per team from a block's confirmed
matches, orders teams with the tie-break chain, and assigns positions with
competition ranking (tied teams share a position; the next group skips
ahead by the size of the tie).

Pure: the caller supplies teams, confirmed matches and rule configuration,
and gets back a complete new snapshot.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from blockrank.services.records import (
    POSITION_SOURCE_STANDINGS,
    MatchRecord,
    PointValues,
    ScoredMatch,
    TeamRecord,
    TeamStanding,
    WalkoverGoals,
)
from blockrank.services.score_normalizer import normalize_score
from blockrank.services.tiebreak_engine import DEFAULT_CHAIN, UnresolvedTie, display_order, rank_groups
from blockrank.services.tiebreak_rules import TieBreakRule

logger = logging.getLogger(__name__)


@dataclass
class StandingsResult:
    standings: List[TeamStanding]
    unresolved_ties: List[UnresolvedTie] = field(default_factory=list)

    def to_snapshot(self) -> List[Dict]:
        return [s.to_dict() for s in self.standings]


def score_match(match: MatchRecord, walkover_goals: WalkoverGoals) -> ScoredMatch:
    """Resolve a match's goals once: walkover values, or normalized period totals."""
    if match.is_walkover and match.winner_team_id in (match.team_a_id, match.team_b_id):
        a_won = match.winner_team_id == match.team_a_id
        goals_a = walkover_goals.winner if a_won else walkover_goals.loser
        goals_b = walkover_goals.loser if a_won else walkover_goals.winner
    else:
        if match.is_walkover:
            logger.warning("Walkover match %s has no valid winner; using played scores", match.match_id)
        goals_a = normalize_score(match.team_a_scores).total
        goals_b = normalize_score(match.team_b_scores).total

    return ScoredMatch(
        match_id=match.match_id,
        team_a_id=match.team_a_id,
        team_b_id=match.team_b_id,
        goals_a=goals_a,
        goals_b=goals_b,
        winner_team_id=match.winner_team_id,
        is_draw=match.is_draw,
    )


def _aggregate(team: TeamRecord, matches: Iterable[ScoredMatch], point_values: PointValues) -> TeamStanding:
    standing = TeamStanding(
        team_id=team.team_id,
        team_name=team.name,
        team_abbreviation=team.abbreviation,
    )
    for match in matches:
        outcome = match.outcome_for(team.team_id)
        standing.matches_played += 1
        standing.goals_for += match.goals_for(team.team_id)
        standing.goals_against += match.goals_against(team.team_id)
        if outcome == "win":
            standing.wins += 1
            standing.points += point_values.win
        elif outcome == "draw":
            standing.draws += 1
            standing.points += point_values.draw
        else:
            standing.losses += 1
            standing.points += point_values.loss
    standing.goal_difference = standing.goals_for - standing.goals_against
    return standing


def calculate_standings(
    teams: Sequence[TeamRecord],
    confirmed_matches: Sequence[MatchRecord],
    point_values: PointValues = PointValues(),
    walkover_goals: WalkoverGoals = WalkoverGoals(),
    tie_break_rules: Optional[Sequence[TieBreakRule]] = None,
) -> StandingsResult:
    """
    Compute a full, ordered ranking for one block.

    Every team appears exactly once. Teams without a played match sit at
    position 0 after the ranked teams. With no tie-break rules the order is
    points, goal difference, goals for, then name.
    """
    if not teams:
        return StandingsResult(standings=[])

    team_ids = {t.team_id for t in teams}
    scored = [
        score_match(m, walkover_goals)
        for m in confirmed_matches
        if m.team_a_id in team_ids and m.team_b_id in team_ids
    ]
    skipped = len(confirmed_matches) - len(scored)
    if skipped:
        logger.debug("Ignored %d match(es) with a side outside the block", skipped)

    played: List[TeamStanding] = []
    unplayed: List[TeamStanding] = []
    for team in teams:
        standing = _aggregate(team, [m for m in scored if team.team_id in (m.team_a_id, m.team_b_id)], point_values)
        (played if standing.matches_played else unplayed).append(standing)

    chain = [r.type for r in sorted(tie_break_rules, key=lambda r: r.order)] if tie_break_rules else list(DEFAULT_CHAIN)
    # Name goes first so equal groups keep a stable display order before partitioning
    outcome = rank_groups(display_order(played), scored, chain, point_values)

    ranked: List[TeamStanding] = []
    for group in outcome.groups:
        position = len(ranked) + 1
        for standing in group:
            standing.position = position
            standing.position_source = POSITION_SOURCE_STANDINGS
            ranked.append(standing)

    for standing in display_order(unplayed):
        standing.position = 0
        standing.position_source = None
        ranked.append(standing)

    if outcome.unresolved:
        logger.info(
            "Standings computed with %d unresolved tie(s): %s",
            len(outcome.unresolved),
            [list(t.team_ids) for t in outcome.unresolved],
        )

    return StandingsResult(standings=ranked, unresolved_ties=outcome.unresolved)
