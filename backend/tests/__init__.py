# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from blockrank.models.match import Match  # noqa: F401
from blockrank.models.match_block import MatchBlock  # noqa: F401
from blockrank.models.match_override import MatchOverride  # noqa: F401
from blockrank.models.match_template import MatchTemplate  # noqa: F401
from blockrank.models.team import Team  # noqa: F401
from blockrank.models.tournament import Tournament  # noqa: F401
from blockrank.models.tournament_rules import TournamentRules  # noqa: F401
