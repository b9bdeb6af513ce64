"""Relative energy trace computed over fixed windows of live audio."""

from __future__ import annotations

import threading
from typing import List

import numpy as np

SILENCE_DB = -70.0
REFERENCE_WINDOWS = 20


def window_db(samples: np.ndarray) -> float:
    if samples.size == 0:
        return SILENCE_DB
    rms = float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))
    if rms <= 0.0:
        return SILENCE_DB
    return max(SILENCE_DB, 20.0 * float(np.log10(rms)))


def relative_energy(energy_db: float, reference_db: float | None) -> float:
    """Scale ``energy_db`` to [0, 1] between ``reference_db`` and 0 dBFS."""
    reference = max(SILENCE_DB, reference_db if reference_db is not None else SILENCE_DB)
    level = max(SILENCE_DB, energy_db)
    if reference >= 0.0:
        return 0.0
    value = (level - reference) / (0.0 - reference)
    return max(0.0, min(value, 1.0))


class EnergySampler:
    """Splits incoming audio into windows and records one energy value each.

    Samples that do not fill a window are carried over to the next ``feed``.
    """

    def __init__(self, sample_rate: int, window_seconds: float = 0.1) -> None:
        self.sample_rate = sample_rate
        self.window_seconds = window_seconds
        self.window_size = max(1, int(round(sample_rate * window_seconds)))
        self._lock = threading.Lock()
        self._pending = np.array([], dtype=np.float32)
        self._db: List[float] = []
        self._relative: List[float] = []

    def feed(self, samples: np.ndarray) -> None:
        data = np.asarray(samples, dtype=np.float32).reshape(-1)
        with self._lock:
            if self._pending.size:
                data = np.concatenate([self._pending, data])
            full = (data.size // self.window_size) * self.window_size
            for offset in range(0, full, self.window_size):
                self._push(window_db(data[offset : offset + self.window_size]))
            self._pending = data[full:].copy()

    def _push(self, energy_db: float) -> None:
        recent = self._db[-REFERENCE_WINDOWS:] + [energy_db]
        self._db.append(energy_db)
        self._relative.append(relative_energy(energy_db, min(recent)))

    def trailing(self, count: int) -> List[float]:
        if count <= 0:
            return []
        with self._lock:
            return self._relative[-count:]

    def clear(self) -> None:
        with self._lock:
            self._pending = np.array([], dtype=np.float32)
            self._db = []
            self._relative = []

    def __len__(self) -> int:
        return len(self._relative)
