from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from blockrank.utils.clock import utc_now

if TYPE_CHECKING:
    from blockrank.models.tournament import Tournament


class TournamentRules(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "phase", name="uq_rules_tournament_phase"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    phase: str = Field(default="preliminary")  # "preliminary" | "final"

    win_points: int = Field(default=3)
    draw_points: int = Field(default=1)
    loss_points: int = Field(default=0)
    walkover_winner_goals: int = Field(default=3)
    walkover_loser_goals: int = Field(default=0)

    # JSON list of {"type": ..., "order": ...}; ignored unless tie_breaking_enabled
    tie_breaking_rules: Optional[str] = Field(default=None)
    tie_breaking_enabled: bool = Field(default=False)

    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    tournament: "Tournament" = Relationship(back_populates="rules")
