"""
Storage interface for player aggregates and the match log.

A store is keyed by (name, tag). All mutations go through transaction(),
a re-entrant, store-wide critical section: concurrent match submissions for
the same player cannot lose updates, and an exception anywhere inside the
outermost transaction rolls back every change made within it.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from tenmans.scoring.models import AggregateDelta, MatchRecord, PlayerAggregate


class AggregateStore(ABC):
    """Abstract aggregate store with transactional mutations."""

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def transaction(self):
        """
        Hold the store lock for the duration of the block.

        Only the outermost transaction loads, commits and rolls back; nested
        transactions join it. A commit that fails is rolled back too.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._begin()
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._rollback()
                raise
            else:
                self._depth -= 1
                if outermost:
                    try:
                        self._commit()
                    except BaseException:
                        self._rollback()
                        raise

    # --- Transaction hooks ---
    @abstractmethod
    def _begin(self) -> None:
        ...

    @abstractmethod
    def _commit(self) -> None:
        ...

    @abstractmethod
    def _rollback(self) -> None:
        ...

    # --- Aggregates ---
    @abstractmethod
    def get_aggregate(self, name: str, tag: str) -> PlayerAggregate:
        """Return the aggregate for (name, tag) or raise NotFoundError."""

    @abstractmethod
    def increment_aggregate(self, name: str, tag: str, delta: AggregateDelta, is_win: bool) -> PlayerAggregate:
        """Fold one match's increments into (name, tag) and return the new aggregate."""

    @abstractmethod
    def all_aggregates(self) -> List[PlayerAggregate]:
        ...

    # --- Player registry ---
    @abstractmethod
    def add_player(self, name: str, tag: str, badges=None, social=None) -> PlayerAggregate:
        ...

    @abstractmethod
    def update_profile(self, name: str, tag: str, badges=None, social=None) -> PlayerAggregate:
        """Replace badges and/or social links; None leaves a field as it is."""

    @abstractmethod
    def rename_player(self, old_name: str, old_tag: str, new_name: str, new_tag: str, social=None) -> PlayerAggregate:
        ...

    @abstractmethod
    def remove_player(self, name: str, tag: str) -> None:
        ...

    @abstractmethod
    def players_count(self) -> int:
        ...

    # --- Match log ---
    @abstractmethod
    def has_match(self, match_id: str) -> bool:
        ...

    @abstractmethod
    def record_match(self, match_id: str, match: MatchRecord, played_at: datetime) -> None:
        ...

    @abstractmethod
    def matches(self) -> List[MatchRecord]:
        ...

    def matches_count(self) -> int:
        return len(self.matches())

    def last_match_at(self) -> Optional[datetime]:
        played = [m.played_at for m in self.matches() if m.played_at is not None]
        return max(played) if played else None
