"""Capture device protocol consumed by the session and scheduler."""

from __future__ import annotations

from typing import Optional, Protocol

from .buffer import AudioBuffer
from .energy import EnergySampler


class CaptureDevice(Protocol):
    """Live source that appends to an ``AudioBuffer`` and ``EnergySampler``."""

    sample_rate: int
    buffer: AudioBuffer
    energy: EnergySampler

    def request_permission(self) -> bool: ...

    def start_capture(self, device_id: Optional[int] = None) -> None: ...

    def stop_capture(self) -> None: ...
