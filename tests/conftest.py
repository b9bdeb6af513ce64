"""Pytest configuration helpers."""

from __future__ import annotations

import asyncio
import sys
import threading
from pathlib import Path

import numpy as np
import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from recitekit.audio.buffer import AudioBuffer  # noqa: E402
from recitekit.audio.energy import EnergySampler  # noqa: E402
from recitekit.settings import Settings  # noqa: E402

SAMPLE_RATE = 16_000
WINDOW = SAMPLE_RATE // 10


def voiced_block(seconds: float) -> np.ndarray:
    """Loud audio led by one quiet window so relative energy has a floor."""
    block = np.full(int(round(seconds * SAMPLE_RATE)), 0.5, dtype=np.float32)
    block[:WINDOW] = 0.0
    return block


def silent_block(seconds: float) -> np.ndarray:
    return np.zeros(int(round(seconds * SAMPLE_RATE)), dtype=np.float32)


def feed(buffer: AudioBuffer, energy: EnergySampler, samples: np.ndarray) -> None:
    buffer.append(samples)
    energy.feed(samples)


class FakeEngine:
    """Records every call; optionally fails or blocks until released."""

    def __init__(self, fail_on: int | None = None, block: bool = False) -> None:
        self.calls: list[int] = []
        self.fail_on = fail_on
        self.model_folder = None
        self.loaded_from: list[Path] = []
        self.prewarmed = 0
        self.unloaded = 0
        self.started = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()

    def transcribe(self, samples, options) -> str:
        self.calls.append(len(samples))
        self.started.set()
        self.release.wait(timeout=5)
        if self.fail_on is not None and len(self.calls) >= self.fail_on:
            raise RuntimeError("decoder exploded")
        return f"pass {len(self.calls)} ({options.language})"

    def load_models(self, path) -> None:
        self.loaded_from.append(Path(path))

    def prewarm(self) -> None:
        self.prewarmed += 1

    def unload(self) -> None:
        self.unloaded += 1


class FakeCapture:
    def __init__(self, sample_rate: int = SAMPLE_RATE, permission: bool = True) -> None:
        self.sample_rate = sample_rate
        self.buffer = AudioBuffer()
        self.energy = EnergySampler(sample_rate, 0.1)
        self.permission = permission
        self.active = False
        self.starts = 0

    def request_permission(self) -> bool:
        return self.permission

    def start_capture(self, device_id=None) -> None:
        self.buffer.clear()
        self.energy.clear()
        self.active = True
        self.starts += 1

    def stop_capture(self) -> None:
        self.active = False


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        model_repo="org/tiny-model",
        hub_endpoint="https://hub.test",
        models_dir=str(tmp_path / "models"),
        model_marker_file="model.bin",
        sample_rate=SAMPLE_RATE,
        poll_interval_seconds=0.01,
        whisper_mock_transcriber=True,
    )
