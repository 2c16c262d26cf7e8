"""Task/asset reconciliation service for remote lyric alignment jobs."""

__version__ = "0.1.0"
