from __future__ import annotations


def _three_figures(value: float) -> str:
    # truncate, never round up: 9.999 M is "9.99 M"
    text = str(value)[:4]
    return text.rstrip("0").rstrip(".")


def human_number(num: int) -> str:
    """
    Format a listener count for display.

    >>> human_number(999)
    '999'
    >>> human_number(999_999)
    '999 K'
    >>> human_number(1_100_000)
    '1.1 M'
    """
    if num < 0:
        raise ValueError(f"expected a non-negative count, got {num}")
    if num < 1_000:
        return str(num)
    if num < 1_000_000:
        return f"{num // 1_000} K"
    if num < 1_000_000_000:
        return f"{_three_figures(num / 1_000_000)} M"
    return f"{_three_figures(num / 1_000_000_000)} B"
