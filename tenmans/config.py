"""
Central configuration for the 10-Mans leaderboard.

All shared constants and configuration values should be defined here
to avoid duplication and ensure consistency across modules.
"""

from pathlib import Path

# --- Project Paths ---
PROJECT_ROOT = Path(__file__).parent.parent
DATA_FOLDER = PROJECT_ROOT / "data"
OUTPUT_FOLDER = DATA_FOLDER / "processed"

# Storage files (relative to the store folder)
PLAYERS_FILE = "players.csv"
MATCHES_FILE = "matches.csv"
EVENTS_FILE = "events.json"

# Leaderboard export pattern
LEADERBOARD_PATTERN = "leaderboard_*.csv"

# --- Match Shape ---
TEAM_SIZE = 5
MATCH_SIZE = TEAM_SIZE * 2  # Team A occupies the first TEAM_SIZE slots
TEAMS = ("A", "B")

# --- Scoring Weights ---
ACS_WEIGHT = 1.5
IMPACT_KILLS_WEIGHT = 1.2
ASSISTS_WEIGHT = 0.8
FIRST_BLOOD_WEIGHT = 1.5
KILLS_CAP = 30  # Per-match kill average is capped before weighting

# Reliability: full weight once a player reaches this many matches
RELIABILITY_MATCHES = 5

# Consistency bonus: +1% per match played, capped
CONSISTENCY_MATCH_CAP = 20
CONSISTENCY_DIVISOR = 100

# --- Input Validation ---
MAX_INPUT_SIZE = 10_000  # Maximum pasted scoreboard size in bytes
MAX_HS_PERCENT = 100
SUSPICIOUS_KILLS = 60  # Soft warning threshold for a single match
SUSPICIOUS_ACS = 1000

# --- Dashboard ---
LEADERBOARD_TOP_N = 20
