"""
Data models for match stats, player aggregates and leaderboard rows.

PlayerAggregate is the only long-lived record; MatchRecord is input to the
aggregate updater and LeaderboardRow is recomputed on every leaderboard read.
"""

from dataclasses import dataclass, asdict, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from tenmans.config import TEAM_SIZE, TEAMS


@dataclass(frozen=True)
class PlayerMatchStat:
    """One player's line from a single match scoreboard"""
    name: str
    tag: str
    kills: int
    deaths: int
    assists: int
    acs: int
    first_bloods: int
    hs_percent: float

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.tag)


@dataclass(frozen=True)
class AggregateDelta:
    """Increments applied to one player's aggregate for one match"""
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    acs: int = 0
    first_bloods: int = 0
    headshot_kills: int = 0


@dataclass(frozen=True)
class PlayerAggregate:
    """
    Lifetime cumulative counters for one (name, tag) identity.

    badges and social are profile fields set by admins; match application
    never touches them.
    """
    name: str
    tag: str
    matches_played: int = 0
    wins: int = 0
    total_kills: int = 0
    total_deaths: int = 0
    total_assists: int = 0
    total_acs: int = 0
    total_first_bloods: int = 0
    total_headshot_kills: int = 0
    badges: Tuple[str, ...] = ()
    social: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.tag)

    def incremented(self, delta: AggregateDelta, is_win: bool) -> "PlayerAggregate":
        """Return a new aggregate with one more match folded in."""
        return replace(
            self,
            matches_played=self.matches_played + 1,
            wins=self.wins + (1 if is_win else 0),
            total_kills=self.total_kills + delta.kills,
            total_deaths=self.total_deaths + delta.deaths,
            total_assists=self.total_assists + delta.assists,
            total_acs=self.total_acs + delta.acs,
            total_first_bloods=self.total_first_bloods + delta.first_bloods,
            total_headshot_kills=self.total_headshot_kills + delta.headshot_kills,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MatchRecord:
    """
    A completed match: ten stat lines plus the winning side.

    Positions 0-4 are Team A and 5-9 are Team B. match_id is the
    idempotency key; a record without one gets a generated id when applied
    and can therefore never be recognised as a resubmission.
    """
    stats: Tuple[PlayerMatchStat, ...]
    winner_team: str
    match_id: Optional[str] = None
    played_at: Optional[datetime] = None

    @staticmethod
    def team_of(index: int) -> str:
        return TEAMS[0] if index < TEAM_SIZE else TEAMS[1]

    def participants(self) -> List[Tuple[PlayerMatchStat, bool]]:
        """Pair every stat line with whether its team won."""
        return [
            (stat, self.team_of(i) == self.winner_team)
            for i, stat in enumerate(self.stats)
        ]


@dataclass(frozen=True)
class LeaderboardRow:
    """Display row derived from a PlayerAggregate"""
    name: str
    tag: str
    avg_acs: float
    avg_kda: float
    hs_percent: float
    avg_first_bloods: float
    winrate: float
    score: int
    matches_played: int
    badges: Tuple[str, ...] = ()
    social: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)
