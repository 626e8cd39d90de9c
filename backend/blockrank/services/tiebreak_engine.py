"""
Tie-break ordering.

The chain partitions teams recursively: each criterion splits the currently
tied group by its value, and each resulting sub-group moves on to the next
criterion. A group still tied when the chain ends (or hits "lottery") stays
tied. The engine never invents an order to force a strict ranking.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from blockrank.services.records import PointValues, ScoredMatch, TeamStanding
from blockrank.services.tiebreak_rules import HEAD_TO_HEAD, LOTTERY

logger = logging.getLogger(__name__)

DEFAULT_CHAIN: Tuple[str, ...] = ("points", "goal_difference", "goals_for")

# Scalar criteria: larger is better for all of them
_CRITERIA: Dict[str, Callable[[TeamStanding], float]] = {
    "points": lambda s: s.points,
    "goal_difference": lambda s: s.goal_difference,
    "goals_for": lambda s: s.goals_for,
    "win_rate": lambda s: s.win_rate,
    "win_count": lambda s: s.wins,
    "run_difference": lambda s: s.goal_difference,
    "runs_scored": lambda s: s.goals_for,
    "point_difference": lambda s: s.goal_difference,
    "points_scored": lambda s: s.goals_for,
}


@dataclass(frozen=True)
class UnresolvedTie:
    team_ids: Tuple[int, ...]
    lottery_required: bool


@dataclass
class TieBreakOutcome:
    groups: List[List[TeamStanding]]
    unresolved: List[UnresolvedTie]


def display_order(group: Sequence[TeamStanding]) -> List[TeamStanding]:
    """Stable order for teams that share a position: name, then id."""
    return sorted(group, key=lambda s: (s.team_name, s.team_id))


def head_to_head_keys(
    group: Sequence[TeamStanding],
    matches: Sequence[ScoredMatch],
    point_values: PointValues,
) -> Dict[int, Tuple[int, int, int]]:
    """
    Mini-table among the tied teams only: (points, goal difference, goals for)
    computed from matches where both sides are in the group.
    """
    ids = {s.team_id for s in group}
    table: Dict[int, List[int]] = {tid: [0, 0, 0] for tid in ids}

    for match in matches:
        if match.team_a_id not in ids or match.team_b_id not in ids:
            continue
        for tid in (match.team_a_id, match.team_b_id):
            outcome = match.outcome_for(tid)
            gf = match.goals_for(tid)
            ga = match.goals_against(tid)
            row = table[tid]
            row[0] += getattr(point_values, outcome)
            row[1] += gf - ga
            row[2] += gf

    return {tid: (row[0], row[1], row[2]) for tid, row in table.items()}


def _partition(group: Sequence[TeamStanding], key_of: Callable[[TeamStanding], object]) -> List[List[TeamStanding]]:
    buckets: Dict[object, List[TeamStanding]] = {}
    for standing in group:
        buckets.setdefault(key_of(standing), []).append(standing)
    return [buckets[k] for k in sorted(buckets, reverse=True)]


def rank_groups(
    standings: Sequence[TeamStanding],
    matches: Sequence[ScoredMatch],
    chain: Sequence[str],
    point_values: PointValues,
) -> TieBreakOutcome:
    """
    Order standings into groups of equal rank, best group first.

    Every team in a returned group shares one position. Groups with more than
    one team are also reported as unresolved ties.
    """
    chain = list(chain) or list(DEFAULT_CHAIN)
    unresolved: List[UnresolvedTie] = []

    def split(group: List[TeamStanding], idx: int) -> List[List[TeamStanding]]:
        if len(group) <= 1:
            return [group]
        if idx >= len(chain):
            unresolved.append(UnresolvedTie(tuple(s.team_id for s in display_order(group)), False))
            return [display_order(group)]

        criterion = chain[idx]
        if criterion == LOTTERY:
            unresolved.append(UnresolvedTie(tuple(s.team_id for s in display_order(group)), True))
            return [display_order(group)]

        if criterion == HEAD_TO_HEAD:
            keys = head_to_head_keys(group, matches, point_values)
            parts = _partition(group, lambda s: keys[s.team_id])
        elif criterion in _CRITERIA:
            parts = _partition(group, _CRITERIA[criterion])
        else:
            logger.warning("Unknown tie-break criterion %r skipped", criterion)
            return split(group, idx + 1)

        ordered: List[List[TeamStanding]] = []
        for part in parts:
            ordered.extend(split(part, idx + 1))
        return ordered

    groups = split(list(standings), 0) if standings else []
    return TieBreakOutcome(groups=groups, unresolved=unresolved)
