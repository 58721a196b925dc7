"""
Leaderboard Score Calculator for 10-Mans

This module turns lifetime player aggregates into ranked leaderboard rows.
Every row is derived independently from one aggregate:
- Per-match averages (ACS, kills, deaths, assists, first bloods)
- Headshot rate and winrate percentages
- A composite score weighted by ACS, impact kills, assists, headshots and wins
- Reliability (ramps up over the first matches) and consistency adjustments

The leaderboard is recomputed from the stored aggregates on every read.

Usage:
    python -m tenmans.scoring.leaderboard
    OR
    from tenmans.scoring import compute_leaderboard
"""

import sys
from pathlib import Path

# Enable both `python tenmans/scoring/leaderboard.py` and `python -m tenmans.scoring.leaderboard` execution.
# Required for tenmans.config/tenmans.utils imports to resolve correctly.
_project_root = str(Path(__file__).parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import json
from datetime import datetime
from typing import Iterable, List

import pandas as pd

from tenmans.config import (
    DATA_FOLDER,
    OUTPUT_FOLDER,
    LEADERBOARD_PATTERN,
    LEADERBOARD_TOP_N,
    ACS_WEIGHT,
    IMPACT_KILLS_WEIGHT,
    ASSISTS_WEIGHT,
    FIRST_BLOOD_WEIGHT,
    KILLS_CAP,
    RELIABILITY_MATCHES,
    CONSISTENCY_MATCH_CAP,
    CONSISTENCY_DIVISOR,
)
from tenmans.scoring.models import LeaderboardRow, PlayerAggregate
from tenmans.utils import atomic_write_csv, cleanup_old_files, round_half_up, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

LEADERBOARD_COLUMNS = [
    'rank', 'name', 'tag', 'score', 'avg_acs', 'avg_kda', 'hs_percent',
    'avg_first_bloods', 'winrate', 'matches_played', 'badges', 'social',
]


def calculate_reliability(matches_played, threshold=RELIABILITY_MATCHES):
    """
    Calculate reliability factor (0-1) based on matches played.
    Reliability reaches 1.0 after threshold matches.
    """
    return min(matches_played / threshold, 1)


def calculate_consistency_bonus(matches_played):
    """
    Multiplier rewarding volume: +1% per match, up to CONSISTENCY_MATCH_CAP matches.
    """
    return 1 + min(matches_played, CONSISTENCY_MATCH_CAP) / CONSISTENCY_DIVISOR


def calculate_impact_kills(avg_kills, total_first_bloods):
    """
    Impact-kill term of the score.

    Note: total_first_bloods is the lifetime sum while avg_kills is a
    per-match average. Rankings depend on this mix, so keep it as is.
    """
    capped_kills = min(avg_kills, KILLS_CAP)
    return (total_first_bloods * FIRST_BLOOD_WEIGHT) + (capped_kills - total_first_bloods)


def score_aggregate(aggregate: PlayerAggregate) -> LeaderboardRow:
    """
    Derive the leaderboard row for one player.

    A player with no matches gets zero for every rate; deaths default to 1
    per match so the KDA and score terms stay defined.
    """
    matches = aggregate.matches_played
    avg_kills = aggregate.total_kills / matches if matches else 0
    avg_deaths = aggregate.total_deaths / matches if matches else 1
    avg_acs = aggregate.total_acs / matches if matches else 0
    avg_assists = aggregate.total_assists / matches if matches else 0
    winrate = (aggregate.wins / matches) * 100 if matches else 0
    hs_percent = (aggregate.total_headshot_kills / aggregate.total_kills) * 100 if aggregate.total_kills else 0
    avg_kda = avg_kills if avg_deaths == 0 else avg_kills / avg_deaths

    impact_kills_score = calculate_impact_kills(avg_kills, aggregate.total_first_bloods)
    score_raw = (
        (avg_acs * ACS_WEIGHT)
        + (impact_kills_score * IMPACT_KILLS_WEIGHT)
        + (avg_assists * ASSISTS_WEIGHT)
        + hs_percent
        + winrate
        - avg_deaths
    )
    reliability = calculate_reliability(matches)
    consistency_bonus = calculate_consistency_bonus(matches)

    return LeaderboardRow(
        name=aggregate.name,
        tag=aggregate.tag,
        avg_acs=avg_acs,
        avg_kda=avg_kda,
        hs_percent=hs_percent,
        avg_first_bloods=aggregate.total_first_bloods / matches if matches else 0,
        winrate=winrate,
        score=round_half_up(score_raw * consistency_bonus * reliability),
        matches_played=matches,
        badges=aggregate.badges,
        social=dict(aggregate.social),
    )


def sort_key(row: LeaderboardRow):
    """Score descending, then name and tag ascending."""
    return (-row.score, row.name, row.tag)


def compute_leaderboard(aggregates: Iterable[PlayerAggregate]) -> List[LeaderboardRow]:
    """
    Score every aggregate and return the rows in leaderboard order.

    Pure: the same aggregates always produce the same rows in the same order,
    regardless of the order they were passed in.
    """
    rows = [score_aggregate(aggregate) for aggregate in aggregates]
    rows.sort(key=sort_key)
    return rows


def leaderboard_frame(rows: List[LeaderboardRow]) -> pd.DataFrame:
    """
    Tabular form of an ordered leaderboard with a 1-based rank column.

    Args:
        rows: Output of compute_leaderboard (already ordered)

    Returns:
        DataFrame with LEADERBOARD_COLUMNS
    """
    df = pd.DataFrame([row.to_dict() for row in rows], columns=LEADERBOARD_COLUMNS[1:])
    df.insert(0, 'rank', range(1, len(df) + 1))
    return df[LEADERBOARD_COLUMNS]


def export_leaderboard(store, folder: Path | None = None, as_of: datetime | None = None) -> Path:
    """
    Compute the leaderboard from a store and write it as a dated CSV.

    Older leaderboard exports in the same folder are removed.

    Returns:
        Path to the written CSV file
    """
    target_folder = folder or OUTPUT_FOLDER
    stamp = (as_of or datetime.now()).strftime('%Y%m%d')

    rows = compute_leaderboard(store.all_aggregates())
    df = leaderboard_frame(rows)
    # Profile fields go out as JSON text, one cell each
    df = df.assign(
        badges=df['badges'].map(lambda badges: json.dumps(list(badges), ensure_ascii=False)),
        social=df['social'].map(lambda social: json.dumps(social, ensure_ascii=False)),
    )

    path = target_folder / f"leaderboard_{stamp}.csv"
    atomic_write_csv(df, path, index=False)
    cleanup_old_files(LEADERBOARD_PATTERN, keep_file=path, folder=target_folder)

    logger.info(f"Exported {len(df)} leaderboard rows to {path}")
    return path


def main():
    from tenmans.storage import CsvAggregateStore

    store = CsvAggregateStore(DATA_FOLDER)
    rows = compute_leaderboard(store.all_aggregates())
    df = leaderboard_frame(rows)

    logger.info("=" * 60)
    logger.info(f"Leaderboard: {store.players_count()} players, {store.matches_count()} matches")
    logger.info("=" * 60)
    if not df.empty:
        logger.info(f"Top {LEADERBOARD_TOP_N} Players by Score:")
        logger.info("\n" + df.drop(columns=['badges', 'social']).head(LEADERBOARD_TOP_N).round(2).to_string(index=False))

    return export_leaderboard(store)


if __name__ == "__main__":
    main()
