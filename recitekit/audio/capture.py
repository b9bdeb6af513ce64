"""Live microphone capture feeding the audio buffer and energy trace."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .buffer import AudioBuffer
from .energy import EnergySampler

LOGGER = logging.getLogger("recitekit.capture")


class LiveCapture:
    """sounddevice ``InputStream`` wrapper; the stream callback only appends."""

    def __init__(
        self,
        sample_rate: int = 16_000,
        *,
        window_seconds: float = 0.1,
        channels: int = 1,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.buffer = AudioBuffer()
        self.energy = EnergySampler(sample_rate, window_seconds)
        self.blocksize = max(1, int(sample_rate * window_seconds))
        self._sd = self._try_import_sounddevice()
        self._stream = None

    def _try_import_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore

            return sd
        except Exception:
            LOGGER.warning("sounddevice unavailable; live capture disabled")
            return None

    @property
    def is_active(self) -> bool:
        return self._stream is not None

    def request_permission(self) -> bool:
        if self._sd is None:
            return False
        try:
            device = self._sd.query_devices(kind="input")
        except Exception as exc:
            LOGGER.warning("No input device available: %s", exc)
            return False
        return bool(device) and int(device.get("max_input_channels", 0)) > 0

    def start_capture(self, device_id: Optional[int] = None) -> None:
        if self._stream is not None:
            return
        if self._sd is None:
            raise RuntimeError("sounddevice is not installed")
        self.buffer.clear()
        self.energy.clear()
        stream = self._sd.InputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="float32",
            blocksize=self.blocksize,
            device=device_id,
            callback=self._callback,
        )
        stream.start()
        self._stream = stream
        LOGGER.info("Capture started (device=%s, rate=%d)", device_id, self.sample_rate)

    def stop_capture(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
        LOGGER.info("Capture stopped after %.1fs", self.buffer.seconds(self.sample_rate))

    def _callback(self, indata, frames, time_info, status) -> None:  # noqa: ARG002
        if status:
            LOGGER.debug("Input stream status: %s", status)
        self.ingest(indata)

    def ingest(self, block: np.ndarray) -> None:
        """Append one block of captured audio (mono or first channel)."""
        data = np.asarray(block, dtype=np.float32)
        if data.ndim > 1:
            data = data[:, 0]
        self.buffer.append(data)
        self.energy.feed(data)
