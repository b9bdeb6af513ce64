"""Append-only live audio buffer and the consumption cursor over it."""

from __future__ import annotations

import threading
from typing import List

import numpy as np


def new_span_seconds(total_samples: int, consumed_samples: int, sample_rate: int) -> float:
    """Seconds of audio captured since the last transcription pass."""
    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")
    return max(0, total_samples - consumed_samples) / float(sample_rate)


class AudioBuffer:
    """Float32 mono samples appended by the capture thread.

    Length only grows until ``clear`` is called for a new session. Readers take
    a length once and pass it to ``snapshot`` so a cycle works on one
    consistent view.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chunks: List[np.ndarray] = []
        self._length = 0

    def append(self, samples: np.ndarray) -> None:
        data = np.asarray(samples, dtype=np.float32).reshape(-1)
        if data.size == 0:
            return
        with self._lock:
            self._chunks.append(data.copy())
            self._length += int(data.size)

    def clear(self) -> None:
        with self._lock:
            self._chunks = []
            self._length = 0

    def snapshot(self, length: int | None = None) -> np.ndarray:
        with self._lock:
            chunks = list(self._chunks)
            available = self._length
        if length is None or length > available:
            length = available
        if not chunks or length <= 0:
            return np.array([], dtype=np.float32)
        return np.concatenate(chunks)[:length]

    def seconds(self, sample_rate: int) -> float:
        return len(self) / float(sample_rate)

    def __len__(self) -> int:
        return self._length


class BufferTracker:
    """Owns the consumption cursor for one recording session."""

    def __init__(self, sample_rate: int) -> None:
        self.sample_rate = sample_rate
        self.consumed = 0

    def reset(self) -> None:
        self.consumed = 0

    def pending_seconds(self, total_samples: int) -> float:
        return new_span_seconds(total_samples, self.consumed, self.sample_rate)

    def advance(self, total_samples: int) -> None:
        if total_samples < self.consumed:
            raise ValueError(
                f"cursor cannot move backwards ({self.consumed} -> {total_samples})"
            )
        self.consumed = total_samples


__all__ = ["AudioBuffer", "BufferTracker", "new_span_seconds"]
