from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from blockrank.utils.clock import utc_now

if TYPE_CHECKING:
    from blockrank.models.tournament import Tournament


class Team(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "name", name="uq_tournament_team_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    abbreviation: Optional[str] = Field(default=None)  # short display name
    # Preliminary block the team plays its round robin in (nullable until the draw)
    assigned_block_id: Optional[int] = Field(default=None, foreign_key="matchblock.id", index=True)
    created_at: datetime = Field(default_factory=utc_now)

    tournament: "Tournament" = Relationship(back_populates="teams")
