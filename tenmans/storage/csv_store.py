"""
CSV-backed aggregate store.

Persists two files in the store folder:
- players.csv: one row per registered player with lifetime counters
  and profile (badges, social links)
- matches.csv: the match log, one row per participant per match

Each outermost transaction reloads both files, and writes them back
atomically only if something changed. A failed transaction leaves the files
untouched, including one that fails while writing the second file.
"""

import json
from datetime import datetime
from pathlib import Path

import pandas as pd

from tenmans.config import MATCHES_FILE, PLAYERS_FILE
from tenmans.scoring.models import MatchRecord, PlayerAggregate, PlayerMatchStat
from tenmans.storage.memory import InMemoryAggregateStore
from tenmans.utils import as_utc, atomic_write_bytes, atomic_write_csv, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

COUNTER_COLUMNS = [
    'matches_played', 'wins', 'total_kills', 'total_deaths',
    'total_assists', 'total_acs', 'total_first_bloods', 'total_headshot_kills',
]

# badges and social are stored as JSON text
PLAYER_COLUMNS = ['name', 'tag', *COUNTER_COLUMNS, 'badges', 'social']

MATCH_COLUMNS = [
    'match_id', 'played_at', 'winner_team', 'position', 'name', 'tag',
    'kills', 'deaths', 'assists', 'acs', 'first_bloods', 'hs_percent',
]

# Identity columns must never be coerced (a player called "NA" stays "NA")
TEXT_DTYPES = {
    'name': str, 'tag': str, 'badges': str, 'social': str,
    'match_id': str, 'winner_team': str, 'played_at': str,
}


class CsvAggregateStore(InMemoryAggregateStore):
    """Aggregate store persisted as CSV files in a folder."""

    def __init__(self, folder: Path):
        super().__init__()
        self.folder = Path(folder)
        self.players_path = self.folder / PLAYERS_FILE
        self.matches_path = self.folder / MATCHES_FILE

    # --- Transaction hooks ---
    def _begin(self):
        self._players = self._load_players()
        self._matches = self._load_matches()
        super()._begin()

    def _commit(self):
        if self._dirty:
            self._save()
        super()._commit()

    # --- Persistence ---
    def _read(self, path: Path, columns) -> pd.DataFrame:
        if not path.exists():
            return pd.DataFrame(columns=columns)
        dtype = {col: kind for col, kind in TEXT_DTYPES.items() if col in columns}
        return pd.read_csv(path, dtype=dtype, keep_default_na=False)

    def _load_players(self):
        df = self._read(self.players_path, PLAYER_COLUMNS)
        players = {}
        for record in df.to_dict('records'):
            aggregate = PlayerAggregate(
                name=record['name'],
                tag=record['tag'],
                badges=tuple(json.loads(record.get('badges') or '[]')),
                social=json.loads(record.get('social') or '{}'),
                **{col: int(record[col]) for col in COUNTER_COLUMNS}
            )
            players[aggregate.key] = aggregate
        return players

    def _load_matches(self):
        df = self._read(self.matches_path, MATCH_COLUMNS)
        if df.empty:
            return {}

        matches = {}
        df = df.sort_values(['position'], kind='stable')
        # groupby keeps first-seen order of match ids with sort=False
        for match_id, group in df.groupby('match_id', sort=False):
            first = group.iloc[0]
            stats = tuple(
                PlayerMatchStat(
                    name=row['name'],
                    tag=row['tag'],
                    kills=int(row['kills']),
                    deaths=int(row['deaths']),
                    assists=int(row['assists']),
                    acs=int(row['acs']),
                    first_bloods=int(row['first_bloods']),
                    hs_percent=float(row['hs_percent']),
                )
                for row in group.to_dict('records')
            )
            matches[match_id] = MatchRecord(
                stats=stats,
                winner_team=first['winner_team'],
                match_id=match_id,
                played_at=as_utc(datetime.fromisoformat(first['played_at'])) if first['played_at'] else None,
            )
        return matches

    def _save(self):
        players_df = pd.DataFrame(
            [
                {
                    **aggregate.to_dict(),
                    'badges': json.dumps(list(aggregate.badges), ensure_ascii=False),
                    'social': json.dumps(aggregate.social, ensure_ascii=False),
                }
                for aggregate in self._players.values()
            ],
            columns=PLAYER_COLUMNS,
        )

        rows = []
        for match_id, match in self._matches.items():
            played_at = match.played_at.isoformat() if match.played_at else ""
            for position, stat in enumerate(match.stats):
                rows.append({
                    'match_id': match_id,
                    'played_at': played_at,
                    'winner_team': match.winner_team,
                    'position': position,
                    'name': stat.name,
                    'tag': stat.tag,
                    'kills': stat.kills,
                    'deaths': stat.deaths,
                    'assists': stat.assists,
                    'acs': stat.acs,
                    'first_bloods': stat.first_bloods,
                    'hs_percent': stat.hs_percent,
                })
        matches_df = pd.DataFrame(rows, columns=MATCH_COLUMNS)

        previous_players = self.players_path.read_bytes() if self.players_path.exists() else None
        atomic_write_csv(players_df, self.players_path, index=False)
        try:
            atomic_write_csv(matches_df, self.matches_path, index=False)
        except Exception:
            # Counters must never be on disk without their match log entry
            self._restore_players(previous_players)
            raise
        logger.debug(f"Saved {len(players_df)} players and {len(self._matches)} matches to {self.folder}")

    def _restore_players(self, previous):
        if previous is None:
            self.players_path.unlink(missing_ok=True)
        else:
            atomic_write_bytes(previous, self.players_path)
        logger.warning(f"Match log write failed; restored {self.players_path}")
