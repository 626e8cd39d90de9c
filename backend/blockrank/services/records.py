"""
Plain records exchanged between the store and the calculators.

The calculators never see ORM rows: the store-facing helpers convert
matches and snapshots into these records and back.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

POSITION_SOURCE_STANDINGS = "standings"
POSITION_SOURCE_PLACEMENT = "placement"
POSITION_SOURCE_MANUAL = "manual"


@dataclass(frozen=True)
class PointValues:
    win: int = 3
    draw: int = 1
    loss: int = 0


@dataclass(frozen=True)
class WalkoverGoals:
    winner: int = 3
    loser: int = 0


@dataclass(frozen=True)
class TeamRecord:
    team_id: int
    name: str
    abbreviation: Optional[str] = None


@dataclass(frozen=True)
class MatchRecord:
    """A confirmed result as the store hands it over; scores are still raw."""

    match_id: int
    team_a_id: int
    team_b_id: int
    team_a_scores: Any = None
    team_b_scores: Any = None
    winner_team_id: Optional[int] = None
    is_draw: bool = False
    is_walkover: bool = False

    def involves(self, team_id: int) -> bool:
        return team_id in (self.team_a_id, self.team_b_id)


@dataclass(frozen=True)
class ScoredMatch:
    """A result after score normalization and walkover substitution."""

    match_id: int
    team_a_id: int
    team_b_id: int
    goals_a: int
    goals_b: int
    winner_team_id: Optional[int]
    is_draw: bool

    def goals_for(self, team_id: int) -> int:
        return self.goals_a if team_id == self.team_a_id else self.goals_b

    def goals_against(self, team_id: int) -> int:
        return self.goals_b if team_id == self.team_a_id else self.goals_a

    def outcome_for(self, team_id: int) -> str:
        """'win', 'draw' or 'loss' from the team's point of view."""
        if self.is_draw:
            return "draw"
        if self.winner_team_id is not None:
            return "win" if self.winner_team_id == team_id else "loss"
        own, other = self.goals_for(team_id), self.goals_against(team_id)
        if own == other:
            return "draw"
        return "win" if own > other else "loss"


@dataclass
class TeamStanding:
    team_id: int
    team_name: str
    team_abbreviation: Optional[str] = None
    points: int = 0
    matches_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    position: int = 0  # 0 = unranked
    position_source: Optional[str] = None  # standings | placement | manual
    note: Optional[str] = None

    @property
    def win_rate(self) -> float:
        return self.wins / self.matches_played if self.matches_played else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamStanding":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        # Older snapshots stored nulls for stats on bracket blocks
        for name in ("points", "matches_played", "wins", "draws", "losses",
                     "goals_for", "goals_against", "goal_difference", "position"):
            if values.get(name) is None:
                values[name] = 0
        return cls(**values)
