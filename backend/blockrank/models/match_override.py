from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from blockrank.utils.clock import utc_now


class MatchOverride(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "match_code", name="uq_override_tournament_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    match_code: str

    # Replacement sources; null keeps the template source for that side
    team_a_source_override: Optional[str] = Field(default=None)
    team_b_source_override: Optional[str] = Field(default=None)

    override_reason: Optional[str] = Field(default=None)
    overridden_by: Optional[str] = Field(default=None)
    overridden_at: datetime = Field(default_factory=utc_now)

    def source_for(self, side: str) -> Optional[str]:
        return self.team_a_source_override if side == "a" else self.team_b_source_override
