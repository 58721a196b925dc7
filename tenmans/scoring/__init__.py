"""
Leaderboard Scoring

Modules:
- models: Match, aggregate and leaderboard row dataclasses
- aggregates: Folding completed matches into player aggregates
- leaderboard: Score calculation and leaderboard ordering
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "apply_match":
        from tenmans.scoring.aggregates import apply_match
        return apply_match
    if name == "compute_leaderboard":
        from tenmans.scoring.leaderboard import compute_leaderboard
        return compute_leaderboard
    if name == "score_aggregate":
        from tenmans.scoring.leaderboard import score_aggregate
        return score_aggregate
    if name == "run_leaderboard":
        from tenmans.scoring.leaderboard import main
        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
