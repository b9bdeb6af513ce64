"""Caller-facing facade tying capture, model loading and the scheduler together."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..audio.capture import LiveCapture
from ..audio.types import CaptureDevice
from ..errors import ModelNotReady, PermissionDenied
from ..observable import Observable
from ..settings import Settings
from .asset_sync import AssetSynchronizer
from .manifest import ManifestResolver
from .model_loader import ModelLoader, ModelState
from .scheduler import SchedulerState, SessionOutcome, TranscriptionScheduler
from .whisper_engine import DecodingOptions, TranscriptionEngine, WhisperEngine

LOGGER = logging.getLogger("recitekit.session")


class RecitationSession:
    def __init__(
        self,
        settings: Settings,
        *,
        capture: Optional[CaptureDevice] = None,
        engine: Optional[TranscriptionEngine] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self.capture = capture or LiveCapture(
            settings.sample_rate, window_seconds=settings.energy_window_seconds
        )
        self.engine = engine or WhisperEngine(settings)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        resolver = ManifestResolver(
            self.client, endpoint=settings.hub_endpoint, revision=settings.hub_revision
        )
        self.loader = ModelLoader(settings, self.engine, AssetSynchronizer(self.client, resolver))
        self.scheduler = TranscriptionScheduler(
            self.engine,
            self.capture.buffer,
            self.capture.energy,
            sample_rate=settings.sample_rate,
            options=DecodingOptions(language=settings.language),
            use_vad=settings.use_vad,
            silence_threshold=settings.silence_threshold,
            min_new_seconds=settings.min_new_audio_seconds,
            poll_interval=settings.poll_interval_seconds,
        )
        self.scheduler.outcome.subscribe(self._on_outcome)

    @property
    def transcript(self) -> Observable[str]:
        return self.scheduler.transcript

    @property
    def progress(self) -> Observable[float]:
        return self.loader.progress

    @property
    def model_state(self) -> Observable[ModelState]:
        return self.loader.state

    @property
    def scheduler_state(self) -> Observable[SchedulerState]:
        return self.scheduler.state

    @property
    def is_recording(self) -> bool:
        return self.scheduler.is_running

    @property
    def buffer_seconds(self) -> float:
        return self.capture.buffer.seconds(self.settings.sample_rate)

    async def load_model(self) -> None:
        await self.loader.load()

    async def start(self, device_id: Optional[int] = None) -> None:
        if not self.loader.is_ready:
            raise ModelNotReady(f"Model is {self.loader.state.value.value}")
        if self.is_recording:
            return
        if not self.capture.request_permission():
            raise PermissionDenied("Microphone access denied")
        self.capture.start_capture(device_id)
        self.scheduler.start()
        LOGGER.info("Recording started")

    async def stop(self) -> Optional[SessionOutcome]:
        self.scheduler.stop()
        outcome = await self.scheduler.wait()
        self.capture.stop_capture()
        LOGGER.info("Recording stopped")
        return outcome

    async def close(self) -> None:
        await self.stop()
        await self.loader.unload()
        if self._owns_client:
            await self.client.aclose()

    def _on_outcome(self, outcome: Optional[SessionOutcome]) -> None:
        if outcome is not None and outcome.failed:
            self.capture.stop_capture()
