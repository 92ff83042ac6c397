from services.errors import (
    InfeasibleMatching,
    InvalidScheduleState,
    NotificationFailure,
    PollInputError,
    SourceUnavailable,
    UserInputError,
    WichtelInputError,
    YippieError,
)
from services.matching_service import MatchingResult, MatchPair, match_participants, validate_matching
from services.team_service import randomize_teams

__all__ = [
    "InfeasibleMatching",
    "InvalidScheduleState",
    "NotificationFailure",
    "PollInputError",
    "SourceUnavailable",
    "UserInputError",
    "WichtelInputError",
    "YippieError",
    "MatchingResult",
    "MatchPair",
    "match_participants",
    "validate_matching",
    "randomize_teams",
]
