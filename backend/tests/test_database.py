"""Engine wiring and row timestamps."""
from datetime import timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from blockrank.database import build_engine, init_db
from blockrank.models.match_block import MatchBlock
from blockrank.models.match_override import MatchOverride
from blockrank.models.tournament import Tournament
from blockrank.utils.clock import utc_now


def test_sqlite_engine_enforces_foreign_keys():
    engine = build_engine("sqlite://")
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    init_db(engine)
    with Session(engine) as session:
        session.add(MatchBlock(tournament_id=999, block_name="A"))
        with pytest.raises(IntegrityError):
            session.commit()


def test_file_database_directory_is_created(tmp_path):
    db_file = tmp_path / "nested" / "blockrank.db"
    engine = build_engine(f"sqlite:///{db_file}")
    init_db(engine)
    assert db_file.exists()
    engine.dispose()


def test_utc_now_is_timezone_aware():
    assert utc_now().tzinfo == timezone.utc


@pytest.mark.parametrize(
    "row, attribute",
    [
        (Tournament(name="Cup"), "created_at"),
        (MatchBlock(tournament_id=1, block_name="A"), "updated_at"),
        (MatchOverride(tournament_id=1, match_code="SF", team_a_source_override="A_1"), "overridden_at"),
    ],
)
def test_new_rows_are_stamped_in_utc(row, attribute):
    assert getattr(row, attribute).tzinfo == timezone.utc
