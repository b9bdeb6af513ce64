"""Voice-gated incremental transcription loop over a live audio buffer."""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional

from ..audio.buffer import AudioBuffer, BufferTracker
from ..audio.energy import EnergySampler
from ..audio.vad import is_voice, window_count
from ..errors import EngineInvocationError, IllegalTransition
from ..metrics import ENGINE_INVOCATIONS, ENGINE_LATENCY
from ..observable import Observable
from .whisper_engine import DecodingOptions, TranscriptionEngine

LOGGER = logging.getLogger("recitekit.scheduler")


class SchedulerState(enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    GATING = "gating"
    TRANSCRIBING = "transcribing"
    PUBLISHING = "publishing"
    STOPPED = "stopped"


_TRANSITIONS = {
    SchedulerState.IDLE: {SchedulerState.POLLING, SchedulerState.STOPPED},
    SchedulerState.POLLING: {SchedulerState.POLLING, SchedulerState.GATING, SchedulerState.STOPPED},
    SchedulerState.GATING: {SchedulerState.POLLING, SchedulerState.TRANSCRIBING, SchedulerState.STOPPED},
    SchedulerState.TRANSCRIBING: {SchedulerState.PUBLISHING, SchedulerState.STOPPED},
    SchedulerState.PUBLISHING: {SchedulerState.POLLING, SchedulerState.STOPPED},
    SchedulerState.STOPPED: {SchedulerState.POLLING},
}


@dataclass(frozen=True)
class SessionOutcome:
    """Terminal event of one recording session."""

    reason: str
    passes: int
    error: Optional[EngineInvocationError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class TranscriptionScheduler:
    """Re-transcribes the whole session buffer whenever enough new voiced audio arrives.

    ``start`` resets the consumption cursor and spawns the loop task; ``stop``
    sets a cooperative flag checked at every suspension point. The loop reads
    the buffer length once per cycle and advances the cursor before awaiting
    the engine, so a slow pass never re-triggers on the same audio.
    """

    def __init__(
        self,
        engine: TranscriptionEngine,
        buffer: AudioBuffer,
        energy: EnergySampler,
        *,
        sample_rate: int = 16_000,
        options: Optional[DecodingOptions] = None,
        use_vad: bool = True,
        silence_threshold: float = 0.3,
        min_new_seconds: float = 1.0,
        poll_interval: float = 0.1,
    ) -> None:
        self.engine = engine
        self.buffer = buffer
        self.energy = energy
        self.sample_rate = sample_rate
        self.options = options or DecodingOptions()
        self.use_vad = use_vad
        self.silence_threshold = silence_threshold
        self.min_new_seconds = min_new_seconds
        self.poll_interval = poll_interval
        self.tracker = BufferTracker(sample_rate)
        self.transcript: Observable[str] = Observable("")
        self.state: Observable[SchedulerState] = Observable(SchedulerState.IDLE)
        self.outcome: Observable[Optional[SessionOutcome]] = Observable(None)
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._passes = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _enter(self, target: SchedulerState) -> None:
        current = self.state.value
        if target not in _TRANSITIONS[current]:
            raise IllegalTransition(current, target)
        self.state.set(target)

    def start(self) -> asyncio.Task:
        if self.is_running:
            raise RuntimeError("Scheduler already running")
        self._begin()
        self._task = asyncio.create_task(self._loop(), name="transcription-scheduler")
        return self._task

    async def run(self) -> SessionOutcome:
        """Run one session in the current task until stopped or failed."""
        self._begin()
        return await self._loop()

    def stop(self) -> None:
        self._stop_event.set()

    async def wait(self) -> Optional[SessionOutcome]:
        if self._task is None:
            return self.outcome.value
        return await self._task

    def _begin(self) -> None:
        self._enter(SchedulerState.POLLING)
        self._stop_event = asyncio.Event()
        self.tracker.reset()
        self._passes = 0
        self.transcript.set("")
        self.outcome.set(None)

    async def _loop(self) -> SessionOutcome:
        error: Optional[EngineInvocationError] = None
        try:
            while not self._stop_event.is_set():
                if not await self._cycle():
                    break
        except EngineInvocationError as exc:
            LOGGER.error("Transcription session stopped: %s", exc)
            error = exc
        except asyncio.CancelledError:
            self._finish(SessionOutcome(reason="cancelled", passes=self._passes))
            raise
        return self._finish(
            SessionOutcome(
                reason="failed" if error else "stopped",
                passes=self._passes,
                error=error,
            )
        )

    def _finish(self, outcome: SessionOutcome) -> SessionOutcome:
        self._enter(SchedulerState.STOPPED)
        self.outcome.set(outcome)
        LOGGER.info("Transcription loop finished (%s, %d passes)", outcome.reason, outcome.passes)
        return outcome

    async def _cycle(self) -> bool:
        """Run one poll/gate/transcribe pass; False once stop was requested."""
        total = len(self.buffer)
        span = self.tracker.pending_seconds(total)
        if span < self.min_new_seconds:
            self._enter(SchedulerState.POLLING)
            return await self._backoff()

        self._enter(SchedulerState.GATING)
        if self.use_vad:
            window = self.energy.window_seconds
            recent = self.energy.trailing(window_count(span, window))
            if not is_voice(recent, span, self.silence_threshold, window):
                self._enter(SchedulerState.POLLING)
                return await self._backoff()

        self._enter(SchedulerState.TRANSCRIBING)
        self.tracker.advance(total)
        samples = self.buffer.snapshot(total)
        text = await self._invoke(samples)
        if self._stop_event.is_set():
            LOGGER.debug("Discarding transcript produced after stop")
            return False

        self._enter(SchedulerState.PUBLISHING)
        self.transcript.set(text)
        self._enter(SchedulerState.POLLING)
        return True

    async def _invoke(self, samples) -> str:
        start = time.perf_counter()
        try:
            text = await asyncio.to_thread(self.engine.transcribe, samples, self.options)
        except Exception as exc:
            ENGINE_INVOCATIONS.labels(status="error").inc()
            raise EngineInvocationError(f"Transcription failed: {exc}") from exc
        ENGINE_INVOCATIONS.labels(status="success").inc()
        ENGINE_LATENCY.observe(time.perf_counter() - start)
        self._passes += 1
        return text

    async def _backoff(self) -> bool:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return True
        return False
