"""
Engine errors.

Business-level anomalies (ties, mismatched slots, malformed scores) are
returned as data. Only structural faults raise: a lookup of a record that
does not exist, or a snapshot write that lost a race.
"""


class EngineLookupError(LookupError):
    """A referenced record does not exist."""

    entity = "record"

    def __init__(self, key):
        self.key = key
        super().__init__(f"{self.entity} {key!r} not found")


class TournamentNotFound(EngineLookupError):
    entity = "Tournament"


class BlockNotFound(EngineLookupError):
    entity = "Block"


class MatchNotFound(EngineLookupError):
    entity = "Match"


class OverrideNotFound(EngineLookupError):
    entity = "Match override"


class TemplateNotFound(EngineLookupError):
    entity = "Match template"


class StaleRankingSnapshot(RuntimeError):
    """The ranking snapshot changed between read and write."""

    def __init__(self, block_id: int, expected_version: int, actual_version: int):
        self.block_id = block_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Ranking snapshot of block {block_id} is at version {actual_version}, "
            f"expected {expected_version}"
        )


class InvalidMatchState(ValueError):
    """The requested transition does not apply to the match as it stands."""


class BlockPhaseMismatch(ValueError):
    """An operation was asked of a block in the wrong phase."""


class InvalidRankingEntry(ValueError):
    """A manual ranking names a team outside the block or a negative position."""


class InvalidOverride(ValueError):
    """An override with no side set, or a source that cannot be parsed or names nothing in the tournament."""
