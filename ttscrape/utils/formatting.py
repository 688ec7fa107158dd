"""
Helper functions for formatting data into human-readable strings.
"""

import json
from typing import Any


def format_elapsed(seconds: float) -> str:
    """
    Formats an elapsed time into a short string (e.g., '845ms', '3.21s', '2m 05s').
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"


def json_excerpt(data: Any, limit: int = 200) -> str:
    """Pretty-prints ``data`` as JSON, cut to ``limit`` characters."""
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def percent_faster(baseline: float, value: float) -> float:
    """How much faster ``value`` is than ``baseline``, in percent."""
    if baseline <= 0:
        return 0.0
    return 100 * (baseline - value) / baseline
