"""Repository status probing."""

from repopulse.status.probe import StatusProbe, parse_ahead_count, parse_porcelain

__all__ = ["StatusProbe", "parse_ahead_count", "parse_porcelain"]
