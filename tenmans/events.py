"""
Event Grouping

Events (tournaments, league nights) group matches under a name. They are a
record-keeping layer only: adding a match to an event never changes player
aggregates, which are updated through tenmans.scoring.apply_match.

Usage:
    from tenmans.events import EventRegistry
    registry = EventRegistry(DATA_FOLDER / EVENTS_FILE)
    registry.create_event("Winter Cup", team_size=5, num_teams=4)
"""

import json
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from tenmans.config import TEAMS
from tenmans.errors import DuplicateEventError, NotFoundError, ValidationError
from tenmans.utils import as_utc, atomic_write_json, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


@dataclass
class EventMatch:
    """A match played under an event"""
    map_name: str
    winner_team: str
    score: str
    team_a: List[str] = field(default_factory=list)
    team_b: List[str] = field(default_factory=list)
    played_at: Optional[datetime] = None


@dataclass
class Event:
    """A named tournament or event night"""
    name: str
    team_size: int
    num_teams: int
    rounds: int = 0
    badge: Optional[str] = None
    teams: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None
    matches: List[EventMatch] = field(default_factory=list)


def _positive_int(value, label: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a positive whole number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a positive whole number") from None
    if number <= 0 or number != value:
        raise ValidationError(f"{label} must be a positive whole number")
    return number


def _event_to_json(event: Event) -> dict:
    data = asdict(event)
    data['created_at'] = event.created_at.isoformat() if event.created_at else None
    for match_data, match in zip(data['matches'], event.matches):
        match_data['played_at'] = match.played_at.isoformat() if match.played_at else None
    return data


def _event_from_json(data: dict) -> Event:
    matches = [
        EventMatch(
            map_name=m['map_name'],
            winner_team=m['winner_team'],
            score=m['score'],
            team_a=list(m.get('team_a') or []),
            team_b=list(m.get('team_b') or []),
            played_at=as_utc(datetime.fromisoformat(m['played_at'])) if m.get('played_at') else None,
        )
        for m in data.get('matches') or []
    ]
    return Event(
        name=data['name'],
        team_size=data['team_size'],
        num_teams=data['num_teams'],
        rounds=data.get('rounds', 0),
        badge=data.get('badge'),
        teams=data.get('teams') or {},
        created_at=as_utc(datetime.fromisoformat(data['created_at'])) if data.get('created_at') else None,
        matches=matches,
    )


class EventRegistry:
    """
    Events keyed by name, kept in memory or in a JSON file.

    With a path, every call reloads the file and every mutation rewrites it
    atomically.
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else None
        self._events: dict[str, Event] = {}
        self._lock = threading.RLock()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        with open(self.path, encoding='utf-8') as f:
            data = json.load(f)
        self._events = {e['name']: _event_from_json(e) for e in data}

    def _save(self) -> None:
        if self.path is None:
            return
        atomic_write_json([_event_to_json(e) for e in self._events.values()], self.path)

    def create_event(self, name, team_size, num_teams, rounds=0, teams=None, badge=None,
                     created_at: datetime | None = None) -> Event:
        """
        Create a new event.

        Raises:
            ValidationError: If name is blank or team_size/num_teams are not positive
            DuplicateEventError: If an event with that name already exists
        """
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            raise ValidationError("Event name is required")
        team_size = _positive_int(team_size, "team_size")
        num_teams = _positive_int(num_teams, "num_teams")
        if rounds:
            rounds = _positive_int(rounds, "rounds")

        with self._lock:
            self._load()
            if name in self._events:
                raise DuplicateEventError(f"Event '{name}' already exists")

            event = Event(
                name=name,
                team_size=team_size,
                num_teams=num_teams,
                rounds=rounds or 0,
                badge=badge,
                teams=dict(teams or {}),
                created_at=as_utc(created_at) if created_at else datetime.now(timezone.utc),
            )
            self._events[name] = event
            self._save()

        logger.info(f"Created event '{name}' ({num_teams} teams of {team_size})")
        return event

    def list_events(self) -> List[Event]:
        """All events, newest first."""
        with self._lock:
            self._load()
            return sorted(
                self._events.values(),
                key=lambda e: e.created_at or datetime.min.replace(tzinfo=timezone.utc),
                reverse=True,
            )

    def get_event(self, name: str) -> Event:
        with self._lock:
            self._load()
            try:
                return self._events[name]
            except KeyError:
                raise NotFoundError(f"Event '{name}' not found") from None

    def add_match(self, event_name: str, map_name, winner_team, score, team_a=None, team_b=None,
                  played_at: datetime | None = None) -> EventMatch:
        """
        Record a match under an event.

        Raises:
            ValidationError: If map, winner or score is missing, or the winner is not A/B
            NotFoundError: If the event does not exist
        """
        if not map_name or not winner_team or not score:
            raise ValidationError("Map, winner and score are required")
        if winner_team not in TEAMS:
            raise ValidationError(
                f"Invalid winner team: {winner_team!r}. Allowed values: {', '.join(TEAMS)}"
            )

        with self._lock:
            event = self.get_event(event_name)
            match = EventMatch(
                map_name=map_name,
                winner_team=winner_team,
                score=score,
                team_a=list(team_a or []),
                team_b=list(team_b or []),
                played_at=as_utc(played_at) if played_at else datetime.now(timezone.utc),
            )
            event.matches.append(match)
            self._save()

        logger.info(f"Added match on {map_name} to event '{event_name}' (team {winner_team} won {score})")
        return match

    def matches_count(self) -> int:
        """Total matches across all events."""
        return sum(len(e.matches) for e in self.list_events())

    def last_match_at(self) -> Optional[datetime]:
        """When the most recent event's last match was played."""
        events = self.list_events()
        if not events or not events[0].matches:
            return None
        last = events[0].matches[-1]
        return last.played_at or events[0].created_at
