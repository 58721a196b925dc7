"""
10-Mans Leaderboard - Core Package

This package contains the core modules for:
- Aggregate updates and leaderboard scoring (tenmans.scoring)
- Aggregate storage and the match log (tenmans.storage)
- Event grouping (tenmans.events)
- Scoreboard ingestion (tenmans.ingestion)
- Shared configuration and utilities
"""

from tenmans.config import *
