"""
Aggregate Updater

Folds one completed match into the lifetime aggregates of its ten players.
The update for a single player is a pure function of (aggregate, stat line);
applying a whole match is all-or-nothing against an AggregateStore:
- the payload is validated before anything is read or written
- every participant must already be registered
- a match id can only be applied once

Usage:
    from tenmans.scoring import apply_match
    match_id = apply_match(record, store)
"""

import math
import uuid
from datetime import datetime, timezone
from numbers import Real

from tenmans.config import MATCH_SIZE, MAX_HS_PERCENT, TEAMS
from tenmans.errors import DuplicateMatchError, ValidationError
from tenmans.scoring.models import (
    AggregateDelta,
    MatchRecord,
    PlayerAggregate,
    PlayerMatchStat,
)
from tenmans.utils import as_utc, round_half_up, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

COUNT_FIELDS = ('kills', 'deaths', 'assists', 'acs', 'first_bloods')


def headshot_kills(hs_percent: float, kills: int) -> int:
    """
    Derive an integer headshot-kill count from a per-match headshot percentage.

    The percentage is applied to the match's kills and rounded half-up, so the
    same (hs_percent, kills) pair always yields the same stored delta.
    """
    return round_half_up(hs_percent / 100 * kills)


def compute_delta(stat: PlayerMatchStat) -> AggregateDelta:
    """Turn one stat line into the increments for its player's aggregate."""
    return AggregateDelta(
        kills=stat.kills,
        deaths=stat.deaths,
        assists=stat.assists,
        acs=stat.acs,
        first_bloods=stat.first_bloods,
        headshot_kills=headshot_kills(stat.hs_percent, stat.kills),
    )


def apply(aggregate: PlayerAggregate, stat: PlayerMatchStat, is_winning_team: bool) -> PlayerAggregate:
    """Return the aggregate with one match folded in. Does not touch storage."""
    return aggregate.incremented(compute_delta(stat), is_winning_team)


def _check_number(value, label: str, integral: bool) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{label} must be finite, got {value!r}")
    if value < 0:
        raise ValidationError(f"{label} must not be negative, got {value!r}")
    if integral and value != int(value):
        raise ValidationError(f"{label} must be a whole number, got {value!r}")


def validate_stat(stat: PlayerMatchStat, position: int) -> None:
    """
    Validate a single stat line.

    Raises:
        ValidationError: On blank identity, or a negative, non-finite or
            non-numeric stat, or a headshot percentage above 100
    """
    if not isinstance(stat.name, str) or not stat.name.strip():
        raise ValidationError(f"Slot {position + 1}: player name is required")
    if not isinstance(stat.tag, str) or not stat.tag.strip():
        raise ValidationError(f"Slot {position + 1}: player tag is required")

    who = f"{stat.name}#{stat.tag}"
    for field_name in COUNT_FIELDS:
        _check_number(getattr(stat, field_name), f"{who} {field_name}", integral=True)

    _check_number(stat.hs_percent, f"{who} hs_percent", integral=False)
    if stat.hs_percent > MAX_HS_PERCENT:
        raise ValidationError(f"{who} hs_percent must be at most {MAX_HS_PERCENT}, got {stat.hs_percent!r}")


def validate_match(match: MatchRecord) -> None:
    """
    Validate a match payload before any aggregate is read.

    Raises:
        ValidationError: If the match does not have exactly MATCH_SIZE entries,
            the winner is not one of TEAMS, a player appears twice, or any
            stat line is malformed
    """
    if match.winner_team not in TEAMS:
        raise ValidationError(
            f"Invalid winner team: {match.winner_team!r}. "
            f"Allowed values: {', '.join(TEAMS)}"
        )

    if len(match.stats) != MATCH_SIZE:
        raise ValidationError(f"Expected exactly {MATCH_SIZE} players, found {len(match.stats)}")

    seen = set()
    for position, stat in enumerate(match.stats):
        validate_stat(stat, position)
        if stat.key in seen:
            raise ValidationError(f"Player {stat.name}#{stat.tag} appears more than once in the match")
        seen.add(stat.key)


def apply_match(match: MatchRecord, store) -> str:
    """
    Apply a completed match to the stored aggregates of its ten players.

    Args:
        match: The match to apply
        store: An AggregateStore

    Returns:
        The match id recorded in the store's match log

    Raises:
        ValidationError: If the payload is malformed (nothing is read or written)
        NotFoundError: If any participant is not registered (nothing is written)
        DuplicateMatchError: If the match id was already applied
    """
    validate_match(match)

    match_id = match.match_id or uuid.uuid4().hex
    played_at = as_utc(match.played_at) if match.played_at else datetime.now(timezone.utc)

    with store.transaction():
        if store.has_match(match_id):
            raise DuplicateMatchError(f"Match {match_id} has already been recorded")

        # Resolve every participant before the first write
        for stat, _ in match.participants():
            store.get_aggregate(stat.name, stat.tag)

        for stat, is_win in match.participants():
            store.increment_aggregate(stat.name, stat.tag, compute_delta(stat), is_win)

        store.record_match(match_id, match, played_at)

    logger.info(f"Applied match {match_id}: team {match.winner_team} won, {len(match.stats)} players updated")
    return match_id
