"""Energy-threshold voice activity gate."""

from __future__ import annotations

from typing import Sequence


def window_count(new_span_seconds: float, window_seconds: float = 0.1) -> int:
    """Number of energy windows covering ``new_span_seconds`` of audio."""
    return max(0, int(new_span_seconds / window_seconds + 1e-9))


def trailing_window(
    energy: Sequence[float], new_span_seconds: float, window_seconds: float = 0.1
) -> Sequence[float]:
    count = window_count(new_span_seconds, window_seconds)
    if count == 0:
        return []
    return energy[-count:]


def is_voice(
    energy: Sequence[float],
    new_span_seconds: float,
    silence_threshold: float,
    window_seconds: float = 0.1,
) -> bool:
    """True if any energy value covering the new span exceeds the threshold."""
    if len(energy) == 0:
        return False
    window = trailing_window(energy, new_span_seconds, window_seconds)
    return any(value > silence_threshold for value in window)
