"""
Paste-Mode Match Ingestion

This module ingests a completed match from a pasted scoreboard. It provides a
fast way to record a match without filling in the admin form row by row.

Expected format (one player per line, Team A first):

    match: 2025-03-14-lobby1
    winner: A
    **Player One#EUW** 22 14 5 287 3 31%
    ...

Usage:
    python -m tenmans.ingestion.paste_mode
    OR
    python tenmans/ingestion/paste_mode.py

    Programmatic usage:
        from tenmans.ingestion.paste_mode import ingest_match_text
        result = ingest_match_text(text, store)
"""

import sys
from pathlib import Path

# Add project root to path for direct script execution
_project_root = str(Path(__file__).parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from datetime import datetime
from typing import List

from tenmans.config import (
    DATA_FOLDER,
    MATCH_SIZE,
    MAX_INPUT_SIZE,
    SUSPICIOUS_KILLS,
    SUSPICIOUS_ACS,
)
from tenmans.errors import DuplicateMatchError, NotFoundError, TenMansError, ValidationError
from tenmans.scoring.aggregates import apply_match, validate_match
from tenmans.scoring.models import MatchRecord, PlayerMatchStat
from tenmans.utils import (
    setup_logging,
    validate_input_size,
    MATCH_ID_RE,
    WINNER_RE,
    STAT_LINE_RE,
    strip_markdown,
)

# --- Module Logger ---
logger = setup_logging(__name__)


def parse_match_text(text: str, played_at: datetime | None = None) -> MatchRecord:
    """
    Parse a pasted scoreboard into a MatchRecord.

    Args:
        text: Raw scoreboard text (copy-pasted)
        played_at: When the match was played (default: when it is applied)

    Returns:
        MatchRecord with the stat lines in paste order

    Raises:
        ValidationError: If the winner line is missing or the player count is wrong
    """
    try:
        validate_input_size(text, MAX_INPUT_SIZE)
    except ValueError as e:
        raise ValidationError(str(e)) from None

    stats = []
    match_id = None
    winner = None

    for line in text.strip().splitlines():
        line = line.strip()
        if not line:
            continue

        if match_id is None:
            m_id = MATCH_ID_RE.match(line)
            if m_id:
                match_id = m_id.group(1)
                continue

        if winner is None:
            m_winner = WINNER_RE.match(line)
            if m_winner:
                winner = m_winner.group(1).upper()
                continue

        m = STAT_LINE_RE.match(line)
        if m:
            name, tag, kills, deaths, assists, acs, first_bloods, hs = m.groups()
            stats.append(PlayerMatchStat(
                name=strip_markdown(name),
                tag=strip_markdown(tag),
                kills=int(kills),
                deaths=int(deaths),
                assists=int(assists),
                acs=int(acs),
                first_bloods=int(first_bloods),
                hs_percent=float(hs),
            ))
        else:
            logger.debug(f"Ignoring unrecognised line: {line!r}")

    if winner is None:
        raise ValidationError("Could not find winner in scoreboard text. Expected format: 'winner: A' or 'winner: B'")

    if len(stats) != MATCH_SIZE:
        raise ValidationError(f"Expected exactly {MATCH_SIZE} player lines, found {len(stats)}")

    return MatchRecord(stats=tuple(stats), winner_team=winner, match_id=match_id, played_at=played_at)


def scoreboard_warnings(match: MatchRecord) -> List[str]:
    """
    Soft checks on a parsed scoreboard.

    Returns:
        List of warning messages (empty if nothing looks off)
    """
    warnings = []
    for stat in match.stats:
        who = f"{stat.name}#{stat.tag}"
        if stat.kills > SUSPICIOUS_KILLS:
            warnings.append(f"{who} has {stat.kills} kills (more than {SUSPICIOUS_KILLS})")
        if stat.acs > SUSPICIOUS_ACS:
            warnings.append(f"{who} has an ACS of {stat.acs} (more than {SUSPICIOUS_ACS})")
        if stat.first_bloods > stat.kills:
            warnings.append(f"{who} has more first bloods ({stat.first_bloods}) than kills ({stat.kills})")
    return warnings


def check_participants(match: MatchRecord, store) -> None:
    """
    Check that every participant is registered and the match id is new.

    Raises:
        NotFoundError: If any participant is not registered
        DuplicateMatchError: If the match id was already recorded
    """
    if match.match_id and store.has_match(match.match_id):
        raise DuplicateMatchError(f"Match {match.match_id} has already been recorded")

    missing = []
    for stat in match.stats:
        try:
            store.get_aggregate(stat.name, stat.tag)
        except NotFoundError:
            missing.append(f"{stat.name}#{stat.tag}")
    if missing:
        raise NotFoundError(f"Unregistered players: {', '.join(missing)}")


def ingest_match_text(
    text: str,
    store,
    dry_run: bool = False,
    played_at: datetime | None = None
) -> dict:
    """
    Main entry point for paste-mode ingestion.

    Args:
        text: Raw scoreboard text (copy-pasted)
        store: AggregateStore to apply the match to
        dry_run: If True, validate only without saving
        played_at: When the match was played (default: now)

    Returns:
        Dictionary with:
            - success: bool
            - match_id: id recorded in the match log (None on dry run without an id)
            - winner_team: "A" or "B"
            - rows: number of player lines parsed
            - warnings: list of warning messages

    Raises:
        ValidationError: If parsing or validation fails
        NotFoundError: If a participant is not registered
        DuplicateMatchError: If the match id was already recorded
    """
    result = {
        'success': False,
        'match_id': None,
        'winner_team': None,
        'rows': 0,
        'warnings': [],
    }

    # Step 1: Parse the text
    logger.info("Parsing scoreboard text...")
    match = parse_match_text(text, played_at=played_at)
    result['match_id'] = match.match_id
    result['winner_team'] = match.winner_team
    result['rows'] = len(match.stats)
    logger.info(f"  Parsed {len(match.stats)} players, team {match.winner_team} won")

    # Step 2: Validate
    logger.info("Validating match...")
    validate_match(match)
    warnings = scoreboard_warnings(match)
    result['warnings'] = warnings
    if warnings:
        for w in warnings:
            logger.warning(f"  Warning: {w}")
    else:
        logger.info("  All validations passed")

    # Step 3: Check players and match id against the store
    logger.info("Checking participants...")
    check_participants(match, store)
    logger.info("  All players registered")

    if dry_run:
        logger.info("[DRY RUN] Validation complete. No data was saved.")
        result['success'] = True
        return result

    # Step 4: Apply to aggregates
    logger.info("Applying match to player aggregates...")
    result['match_id'] = apply_match(match, store)

    result['success'] = True
    logger.info(f"Ingestion complete for match {result['match_id']}")
    return result


def main():
    """CLI interface for paste-mode ingestion."""
    from tenmans.storage import CsvAggregateStore

    print("=" * 60)
    print("10-Mans Paste-Mode Match Ingestion")
    print("=" * 60)
    print("\nPaste the scoreboard below (winner line plus 10 player lines).")
    print("When finished, press Enter twice (empty line) to process.\n")
    print("-" * 60)

    lines = []
    empty_count = 0

    try:
        while True:
            line = input()
            if line == "":
                empty_count += 1
                if empty_count >= 2:
                    break
                lines.append(line)
            else:
                empty_count = 0
                lines.append(line)
    except EOFError:
        pass

    text = "\n".join(lines)

    if not text.strip():
        print("\nNo input received. Exiting.")
        sys.exit(1)

    print("-" * 60)
    print("\nProcessing input...\n")

    store = CsvAggregateStore(DATA_FOLDER)

    try:
        # First do a dry run to validate
        print("Step 1: Validation (dry run)")
        result = ingest_match_text(text, store, dry_run=True)

        # Ask for confirmation
        print(f"\nReady to record match (team {result['winner_team']} won).")
        confirm = input("Proceed with ingestion? [y/N]: ").strip().lower()

        if confirm != 'y':
            print("Ingestion cancelled.")
            sys.exit(0)

        # Do the actual ingestion
        print("\nStep 2: Ingestion")
        result = ingest_match_text(text, store, dry_run=False)

        print("\n" + "=" * 60)
        print("SUCCESS!")
        print(f"  Match: {result['match_id']}")
        print(f"  Winner: Team {result['winner_team']}")
        print(f"  Players: {result['rows']}")
        if result['warnings']:
            print(f"  Warnings: {len(result['warnings'])}")
        print("=" * 60)

    except ValidationError as e:
        print(f"\nVALIDATION ERROR: {e}")
        sys.exit(1)
    except NotFoundError as e:
        print(f"\nUNKNOWN PLAYER: {e}")
        sys.exit(1)
    except DuplicateMatchError as e:
        print(f"\nDUPLICATE MATCH ERROR: {e}")
        sys.exit(1)
    except TenMansError as e:
        print(f"\nINGESTION ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
