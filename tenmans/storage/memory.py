"""
In-memory aggregate store.

Keeps aggregates and the match log in dicts. Rollback restores the snapshot
taken when the outermost transaction began. Also the base for the CSV store,
which only adds loading and saving around the same state.
"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Mapping, Tuple

from tenmans.errors import DuplicatePlayerError, NotFoundError, ValidationError
from tenmans.scoring.models import AggregateDelta, MatchRecord, PlayerAggregate, PlayerMatchStat
from tenmans.storage.base import AggregateStore
from tenmans.utils import as_utc, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


def normalize_identity(name, tag) -> Tuple[str, str]:
    """Strip a (name, tag) pair and reject blanks."""
    name = name.strip() if isinstance(name, str) else ""
    tag = tag.strip() if isinstance(tag, str) else ""
    if not name or not tag:
        raise ValidationError("Player name and tag are required")
    return name, tag


def normalize_profile(badges=None, social=None) -> Tuple[Tuple[str, ...], Dict[str, str]]:
    """
    Check admin-supplied profile fields.

    badges is a list of labels; social maps a network name to a handle or
    URL. Entries are stripped and blank ones dropped.
    """
    if badges is None:
        badges = ()
    if isinstance(badges, str) or not isinstance(badges, (list, tuple)):
        raise ValidationError("Badges must be a list of labels")
    if not all(isinstance(badge, str) for badge in badges):
        raise ValidationError("Badges must be text")

    social = {} if social is None else social
    if not isinstance(social, Mapping):
        raise ValidationError("Social links must be a mapping of network to link")
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in social.items()):
        raise ValidationError("Social networks and links must be text")

    badges = tuple(badge.strip() for badge in badges if badge.strip())
    social = {k.strip(): v.strip() for k, v in social.items() if k.strip() and v.strip()}
    return badges, social


class InMemoryAggregateStore(AggregateStore):
    """Dict-backed store; state lives for the lifetime of the object."""

    def __init__(self, aggregates=None):
        super().__init__()
        self._players: Dict[Tuple[str, str], PlayerAggregate] = {}
        self._matches: Dict[str, MatchRecord] = {}
        self._snapshot = None
        self._dirty = False
        for aggregate in aggregates or []:
            self._players[aggregate.key] = aggregate

    # --- Transaction hooks ---
    def _begin(self):
        self._snapshot = (dict(self._players), dict(self._matches))
        self._dirty = False

    def _commit(self):
        self._snapshot = None
        self._dirty = False

    def _rollback(self):
        if self._snapshot is not None:
            self._players, self._matches = self._snapshot
        self._snapshot = None
        self._dirty = False

    # --- Aggregates ---
    def get_aggregate(self, name, tag):
        with self.transaction():
            try:
                return self._players[(name, tag)]
            except KeyError:
                raise NotFoundError(f"Player {name}#{tag} is not registered") from None

    def increment_aggregate(self, name, tag, delta: AggregateDelta, is_win: bool):
        with self.transaction():
            aggregate = self.get_aggregate(name, tag).incremented(delta, is_win)
            self._players[aggregate.key] = aggregate
            self._dirty = True
            return aggregate

    def all_aggregates(self) -> List[PlayerAggregate]:
        with self.transaction():
            return list(self._players.values())

    # --- Player registry ---
    def add_player(self, name, tag, badges=None, social=None):
        name, tag = normalize_identity(name, tag)
        badges, social = normalize_profile(badges, social)
        with self.transaction():
            if (name, tag) in self._players:
                raise DuplicatePlayerError(f"Player {name}#{tag} already exists")
            aggregate = PlayerAggregate(name=name, tag=tag, badges=badges, social=social)
            self._players[aggregate.key] = aggregate
            self._dirty = True
        logger.info(f"Registered player {name}#{tag}")
        return aggregate

    def rename_player(self, old_name, old_tag, new_name, new_tag, social=None):
        new_name, new_tag = normalize_identity(new_name, new_tag)
        with self.transaction():
            aggregate = self.get_aggregate(old_name, old_tag)
            new_key = (new_name, new_tag)
            if new_key != aggregate.key and new_key in self._players:
                raise DuplicatePlayerError(f"Player {new_name}#{new_tag} already exists")

            del self._players[aggregate.key]
            renamed = replace(aggregate, name=new_name, tag=new_tag)
            self._players[new_key] = renamed

            # Keep the match log pointing at the player's current identity
            for match_id, match in self._matches.items():
                if any(stat.key == aggregate.key for stat in match.stats):
                    stats = tuple(
                        replace(stat, name=new_name, tag=new_tag) if stat.key == aggregate.key else stat
                        for stat in match.stats
                    )
                    self._matches[match_id] = replace(match, stats=stats)
            self._dirty = True

            if social is not None:
                renamed = self.update_profile(new_name, new_tag, social=social)

        logger.info(f"Renamed player {old_name}#{old_tag} to {new_name}#{new_tag}")
        return renamed

    def update_profile(self, name, tag, badges=None, social=None):
        with self.transaction():
            aggregate = self.get_aggregate(name, tag)
            new_badges, new_social = normalize_profile(
                aggregate.badges if badges is None else badges,
                aggregate.social if social is None else social,
            )
            updated = replace(aggregate, badges=new_badges, social=new_social)
            self._players[updated.key] = updated
            self._dirty = True
        logger.info(f"Updated profile of {name}#{tag}")
        return updated

    def remove_player(self, name, tag):
        with self.transaction():
            aggregate = self.get_aggregate(name, tag)
            del self._players[aggregate.key]
            self._dirty = True
        logger.info(f"Removed player {name}#{tag}")

    def players_count(self):
        with self.transaction():
            return len(self._players)

    # --- Match log ---
    def has_match(self, match_id):
        with self.transaction():
            return match_id in self._matches

    def record_match(self, match_id, match: MatchRecord, played_at: datetime):
        with self.transaction():
            self._matches[match_id] = replace(match, match_id=match_id, played_at=as_utc(played_at))
            self._dirty = True

    def matches(self) -> List[MatchRecord]:
        with self.transaction():
            return list(self._matches.values())

    def match_stats(self, name, tag) -> List[Tuple[MatchRecord, PlayerMatchStat]]:
        """Every logged stat line for (name, tag), oldest match first."""
        return [
            (match, stat)
            for match in self.matches()
            for stat in match.stats
            if stat.key == (name, tag)
        ]
