from blockrank.models.match import Match
from blockrank.models.match_block import MatchBlock
from blockrank.models.match_override import MatchOverride
from blockrank.models.match_template import MatchTemplate
from blockrank.models.team import Team
from blockrank.models.tournament import Tournament
from blockrank.models.tournament_rules import TournamentRules

__all__ = [
    "Tournament",
    "TournamentRules",
    "Team",
    "MatchBlock",
    "Match",
    "MatchTemplate",
    "MatchOverride",
]
