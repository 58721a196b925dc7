"""
Aggregate Storage

Modules:
- base: AggregateStore interface and transaction handling
- memory: Dict-backed store
- csv_store: CSV-backed store (players.csv, matches.csv)
"""

from tenmans.storage.base import AggregateStore
from tenmans.storage.memory import InMemoryAggregateStore
from tenmans.storage.csv_store import CsvAggregateStore

__all__ = ['AggregateStore', 'InMemoryAggregateStore', 'CsvAggregateStore']
