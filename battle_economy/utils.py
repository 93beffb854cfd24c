"""Utility functions for formatting and display."""


def format_number(n: float) -> str:
    """Format a number with K/M/B suffix."""
    if abs(n) >= 1_000_000_000:
        return f"{n / 1_000_000_000:.1f}B"
    if abs(n) >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if abs(n) >= 1_000:
        return f"{n / 1_000:.1f}K"
    if isinstance(n, float) and not n.is_integer():
        return f"{n:.1f}"
    return str(int(n))


def format_multiplier(value: float) -> str:
    return f"x{value:.3f}"


def format_percent(value: float) -> str:
    """Format a signed fraction as a percentage (0.05 -> +5.0%)."""
    return f"{value * 100:+.1f}%"


def format_stage(chapter: int, stage: int) -> str:
    return f"{chapter}-{stage}"
