"""
Data Ingestion

Modules:
- paste_mode: Pasted scoreboard ingestion
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "ingest_match_text":
        from tenmans.ingestion.paste_mode import ingest_match_text
        return ingest_match_text
    if name == "parse_match_text":
        from tenmans.ingestion.paste_mode import parse_match_text
        return parse_match_text
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
