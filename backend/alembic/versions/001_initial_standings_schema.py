"""Initial migration: tournaments, blocks, teams, matches, bracket templates and overrides

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sport_code", sa.String(), nullable=False, server_default="pk_championship"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # Block ranking snapshot is one JSON document; rankings_version guards concurrent replaces
    op.create_table(
        "matchblock",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("block_name", sa.String(), nullable=False),
        sa.Column("phase", sa.String(), nullable=False, server_default="preliminary"),
        sa.Column("team_rankings", sa.JSON(), nullable=False),
        sa.Column("rankings_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "block_name", name="uq_tournament_block_name"),
    )
    op.create_index("ix_matchblock_tournament_id", "matchblock", ["tournament_id"])

    op.create_table(
        "team",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("abbreviation", sa.String(), nullable=True),
        sa.Column("assigned_block_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["assigned_block_id"], ["matchblock.id"]),
        sa.UniqueConstraint("tournament_id", "name", name="uq_tournament_team_name"),
    )
    op.create_index("ix_team_tournament_id", "team", ["tournament_id"])
    op.create_index("ix_team_assigned_block_id", "team", ["assigned_block_id"])

    op.create_table(
        "tournamentrules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("phase", sa.String(), nullable=False, server_default="preliminary"),
        sa.Column("win_points", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("draw_points", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("loss_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("walkover_winner_goals", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("walkover_loser_goals", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tie_breaking_rules", sa.String(), nullable=True),
        sa.Column("tie_breaking_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "phase", name="uq_rules_tournament_phase"),
    )
    op.create_index("ix_tournamentrules_tournament_id", "tournamentrules", ["tournament_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("block_id", sa.Integer(), nullable=False),
        sa.Column("match_code", sa.String(), nullable=False),
        sa.Column("team_a_id", sa.Integer(), nullable=True),
        sa.Column("team_b_id", sa.Integer(), nullable=True),
        sa.Column("team_a_display_name", sa.String(), nullable=False, server_default=""),
        sa.Column("team_b_display_name", sa.String(), nullable=False, server_default=""),
        sa.Column("team_a_scores", sa.String(), nullable=True),
        sa.Column("team_b_scores", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("is_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_draw", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_walkover", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("winner_team_id", sa.Integer(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["block_id"], ["matchblock.id"]),
        sa.ForeignKeyConstraint(["team_a_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["team_b_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["winner_team_id"], ["team.id"]),
        sa.UniqueConstraint("tournament_id", "match_code", name="uq_match_tournament_code"),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])
    op.create_index("ix_match_block_id", "match", ["block_id"])

    op.create_table(
        "matchtemplate",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("match_code", sa.String(), nullable=False),
        sa.Column("phase", sa.String(), nullable=False, server_default="final"),
        sa.Column("round_name", sa.String(), nullable=True),
        sa.Column("team_a_source", sa.String(), nullable=True),
        sa.Column("team_b_source", sa.String(), nullable=True),
        sa.Column("team_a_display_name", sa.String(), nullable=False, server_default=""),
        sa.Column("team_b_display_name", sa.String(), nullable=False, server_default=""),
        sa.Column("winner_position", sa.Integer(), nullable=True),
        sa.Column("loser_position_start", sa.Integer(), nullable=True),
        sa.Column("loser_position_end", sa.Integer(), nullable=True),
        sa.Column("position_note", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "match_code", name="uq_template_tournament_code"),
    )
    op.create_index("ix_matchtemplate_tournament_id", "matchtemplate", ["tournament_id"])

    op.create_table(
        "matchoverride",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("match_code", sa.String(), nullable=False),
        sa.Column("team_a_source_override", sa.String(), nullable=True),
        sa.Column("team_b_source_override", sa.String(), nullable=True),
        sa.Column("override_reason", sa.String(), nullable=True),
        sa.Column("overridden_by", sa.String(), nullable=True),
        sa.Column("overridden_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "match_code", name="uq_override_tournament_code"),
    )
    op.create_index("ix_matchoverride_tournament_id", "matchoverride", ["tournament_id"])


def downgrade() -> None:
    op.drop_index("ix_matchoverride_tournament_id", table_name="matchoverride")
    op.drop_table("matchoverride")
    op.drop_index("ix_matchtemplate_tournament_id", table_name="matchtemplate")
    op.drop_table("matchtemplate")
    op.drop_index("ix_match_block_id", table_name="match")
    op.drop_index("ix_match_tournament_id", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_tournamentrules_tournament_id", table_name="tournamentrules")
    op.drop_table("tournamentrules")
    op.drop_index("ix_team_assigned_block_id", table_name="team")
    op.drop_index("ix_team_tournament_id", table_name="team")
    op.drop_table("team")
    op.drop_index("ix_matchblock_tournament_id", table_name="matchblock")
    op.drop_table("matchblock")
    op.drop_table("tournament")
