from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from blockrank.utils.clock import utc_now

if TYPE_CHECKING:
    from blockrank.models.match_block import MatchBlock

STATUS_SCHEDULED = "scheduled"
STATUS_ONGOING = "ongoing"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "match_code", name="uq_match_tournament_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    block_id: int = Field(foreign_key="matchblock.id", index=True)
    match_code: str

    # Team assignments (nullable until a bracket slot is resolved)
    team_a_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team_b_id: Optional[int] = Field(default=None, foreign_key="team.id")

    # Display names: the template placeholder label ("A_1") until a team is placed
    team_a_display_name: str = Field(default="")
    team_b_display_name: str = Field(default="")

    # Raw per-period scores as stored ("[2,1]"; legacy rows may hold "2,1" or "2")
    team_a_scores: Optional[str] = Field(default=None)
    team_b_scores: Optional[str] = Field(default=None)

    status: str = Field(default=STATUS_SCHEDULED)  # scheduled | ongoing | completed | cancelled
    is_confirmed: bool = Field(default=False)
    is_draw: bool = Field(default=False)
    is_walkover: bool = Field(default=False)
    winner_team_id: Optional[int] = Field(default=None, foreign_key="team.id")

    confirmed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)

    block: "MatchBlock" = Relationship(back_populates="matches")

    def loser_team_id(self) -> Optional[int]:
        """The side that did not win; None for draws or undecided matches."""
        if self.is_draw or self.winner_team_id is None:
            return None
        if self.winner_team_id == self.team_a_id:
            return self.team_b_id
        if self.winner_team_id == self.team_b_id:
            return self.team_a_id
        return None
