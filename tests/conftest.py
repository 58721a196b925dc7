"""
Shared fixtures: ten registered players and a builder for valid matches.
"""

import pytest

from tenmans.scoring.models import MatchRecord, PlayerMatchStat
from tenmans.storage import InMemoryAggregateStore

PLAYERS = [(f"Player{i}", "EUW") for i in range(10)]


def make_stat(name, tag, kills=20, deaths=15, assists=5, acs=250, first_bloods=2, hs_percent=25.0):
    return PlayerMatchStat(
        name=name,
        tag=tag,
        kills=kills,
        deaths=deaths,
        assists=assists,
        acs=acs,
        first_bloods=first_bloods,
        hs_percent=hs_percent,
    )


def make_match(players=None, winner_team="A", match_id=None, played_at=None, **stat_kwargs):
    players = players or PLAYERS
    stats = tuple(make_stat(name, tag, **stat_kwargs) for name, tag in players)
    return MatchRecord(stats=stats, winner_team=winner_team, match_id=match_id, played_at=played_at)


@pytest.fixture
def store():
    store = InMemoryAggregateStore()
    for name, tag in PLAYERS:
        store.add_player(name, tag)
    return store
