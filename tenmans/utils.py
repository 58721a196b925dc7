"""
Shared utilities for the 10-Mans leaderboard.

This module provides common functions used across multiple modules
to avoid code duplication.
"""

import json
import logging
import math
import re
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from tenmans.config import OUTPUT_FOLDER

# --- Shared Regex Patterns for Scoreboard Parsing ---
# Match id: match: <id> (optional backticks, case-insensitive)
MATCH_ID_RE = re.compile(r"`?match:\s*([\w-]+)`?", re.IGNORECASE)

# Winner: winner: A (optional "team", case-insensitive)
WINNER_RE = re.compile(r"`?winner:\s*(?:team\s+)?([AB])\b`?", re.IGNORECASE)

# Player line: **Name#TAG** kills deaths assists acs first_bloods hs%
STAT_LINE_RE = re.compile(
    r"^\*{0,2}(.+?)#([^\s*]+?)\*{0,2}\s+"
    r"(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s+(\d+(?:\.\d+)?)%?\s*$"
)


def strip_markdown(name: str) -> str:
    """Remove **bold**, `backticks`, and leading/trailing spaces."""
    return re.sub(r"[*`]", "", name).strip()


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves toward positive infinity.

    Used for both headshot-kill derivation and the final leaderboard score
    so stored integers and displayed scores follow a single rule. Adding 0.5
    before flooring is not equivalent: 0.49999999999999994 + 0.5 rounds up
    to 1.0 in binary floating point.
    """
    whole = math.floor(value)
    return whole + 1 if value - whole >= 0.5 else whole


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime, or convert an aware one to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- Logging Setup ---
def setup_logging(name: str | None = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configure and return a logger with consistent formatting.

    Args:
        name: Logger name (usually __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


# --- File Operations ---
def cleanup_old_files(pattern: str, keep_file: Path | None = None, folder: Path | None = None) -> list[Path]:
    """
    Remove old files matching pattern, optionally keeping one specific file.

    Args:
        pattern: Glob pattern to match files (e.g., "leaderboard_*.csv")
        keep_file: Path to the file that should NOT be deleted (usually the newest)
        folder: Folder to search in (default: OUTPUT_FOLDER)

    Returns:
        List of deleted file paths
    """
    logger = setup_logging(__name__)
    target_folder = folder or OUTPUT_FOLDER
    deleted = []

    for f in target_folder.glob(pattern):
        if keep_file and f.resolve() == keep_file.resolve():
            continue
        try:
            f.unlink()
            deleted.append(f)
            logger.debug(f"Deleted old file: {f}")
        except OSError as e:
            logger.warning(f"Could not delete {f}: {e}")

    return deleted


def _atomic_write(path: Path, suffix: str, write) -> None:
    """Run write(tmp_name) against a temp file next to path, then move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with tempfile.NamedTemporaryFile(
            mode='w',
            delete=False,
            suffix=suffix,
            dir=path.parent  # Same filesystem for atomic move
        ) as tmp:
            tmp_path = Path(tmp.name)
        write(tmp.name)

        # Atomic move (rename) to final destination
        shutil.move(str(tmp_path), str(path))

    except Exception:
        # Clean up temp file if it exists
        if 'tmp_path' in locals() and tmp_path.exists():
            tmp_path.unlink()
        raise


def atomic_write_csv(df, path: Path, **kwargs) -> None:
    """
    Write a DataFrame to CSV atomically using a temporary file.

    This prevents data corruption if the write is interrupted.

    Args:
        df: pandas DataFrame to write
        path: Destination path for the CSV file
        **kwargs: Additional arguments to pass to df.to_csv()
    """
    logger = setup_logging(__name__)
    _atomic_write(path, '.csv', lambda name: df.to_csv(name, **kwargs))
    logger.debug(f"Atomically wrote {len(df)} rows to {path}")


def atomic_write_json(data, path: Path) -> None:
    """
    Write a JSON-serialisable object atomically using a temporary file.

    Args:
        data: Object to serialise (dates must already be strings)
        path: Destination path for the JSON file
    """
    def write(name):
        with open(name, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    _atomic_write(path, '.json', write)


def atomic_write_bytes(data: bytes, path: Path) -> None:
    """Put previously read file contents back in place atomically."""
    _atomic_write(path, path.suffix, lambda name: Path(name).write_bytes(data))


# --- Validation ---
def validate_input_size(text: str, max_size: int) -> None:
    """
    Validate that input text does not exceed maximum size.

    Args:
        text: Input text to validate
        max_size: Maximum allowed size in bytes

    Raises:
        ValueError: If input exceeds max_size
    """
    if len(text) > max_size:
        raise ValueError(
            f"Input too large: {len(text):,} bytes. "
            f"Maximum allowed: {max_size:,} bytes"
        )


__all__ = [
    # Logging
    'setup_logging',
    # File operations
    'cleanup_old_files',
    'atomic_write_csv',
    'atomic_write_json',
    'atomic_write_bytes',
    # Numbers
    'round_half_up',
    'as_utc',
    # Validation
    'validate_input_size',
    # Scoreboard parsing
    'MATCH_ID_RE',
    'WINNER_RE',
    'STAT_LINE_RE',
    'strip_markdown',
]
