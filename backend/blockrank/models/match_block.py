from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

from blockrank.utils.clock import utc_now

if TYPE_CHECKING:
    from blockrank.models.match import Match
    from blockrank.models.tournament import Tournament

PHASE_PRELIMINARY = "preliminary"
PHASE_FINAL = "final"


class MatchBlock(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "block_name", name="uq_tournament_block_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    block_name: str  # "A", "B", ... for round robin blocks; "final" for the bracket
    phase: str = Field(default=PHASE_PRELIMINARY)  # "preliminary" | "final"

    # Ranking snapshot: list of TeamStanding dicts. Always replaced as a whole.
    team_rankings: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # Bumped on every snapshot replace; writers compare it to detect lost updates
    rankings_version: int = Field(default=0)
    updated_at: datetime = Field(default_factory=utc_now)

    tournament: "Tournament" = Relationship(back_populates="blocks")
    matches: List["Match"] = Relationship(back_populates="block")

    @property
    def is_elimination(self) -> bool:
        return self.phase == PHASE_FINAL
