"""Utility functions for ctxgit."""

from ctxgit.utils.helpers import ensure_dir, today_date, timestamp

__all__ = ["ensure_dir", "today_date", "timestamp"]
