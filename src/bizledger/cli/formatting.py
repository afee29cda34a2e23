"""CLI output formatting helpers."""

import math


def format_delta(value: float) -> str:
    """Render a period-over-period percentage; infinite deltas read as "new"."""
    if math.isinf(value):
        return "new"
    return f"{value:+.1f}%"
