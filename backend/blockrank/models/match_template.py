from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class MatchTemplate(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "match_code", name="uq_template_tournament_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    match_code: str
    phase: str = Field(default="final")  # "preliminary" | "final"
    round_name: Optional[str] = Field(default=None)

    # Symbolic sources: "A_1" (block A, 1st), "M3_winner", "M3_loser"; null for fixed teams
    team_a_source: Optional[str] = Field(default=None)
    team_b_source: Optional[str] = Field(default=None)
    # Placeholder labels shown until the slot is resolved
    team_a_display_name: str = Field(default="")
    team_b_display_name: str = Field(default="")

    # Placement metadata for the elimination block ranking
    winner_position: Optional[int] = Field(default=None)
    loser_position_start: Optional[int] = Field(default=None)
    loser_position_end: Optional[int] = Field(default=None)
    position_note: Optional[str] = Field(default=None)

    def source_for(self, side: str) -> Optional[str]:
        return self.team_a_source if side == "a" else self.team_b_source

    def placeholder_for(self, side: str) -> str:
        return self.team_a_display_name if side == "a" else self.team_b_display_name
