from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from blockrank.utils.clock import utc_now

if TYPE_CHECKING:
    from blockrank.models.match_block import MatchBlock
    from blockrank.models.team import Team
    from blockrank.models.tournament_rules import TournamentRules


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    sport_code: str = Field(default="pk_championship")  # soccer | pk_championship | baseball | basketball
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    blocks: List["MatchBlock"] = Relationship(back_populates="tournament")
    teams: List["Team"] = Relationship(back_populates="tournament")
    rules: List["TournamentRules"] = Relationship(back_populates="tournament")
