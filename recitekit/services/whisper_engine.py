"""Lazy Whisper (faster-whisper) loader + mock fallback."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

import numpy as np

try:  # pragma: no cover - optional heavy dependency
    from faster_whisper import WhisperModel  # type: ignore
except Exception:  # pragma: no cover
    WhisperModel = None  # type: ignore

from ..settings import Settings

LOGGER = logging.getLogger("recitekit.whisper")

_SPECIAL_TOKEN = re.compile(r"<\|[^|>]*\|>")


@dataclass(frozen=True)
class DecodingOptions:
    language: str = "ar"
    temperature: float = 0.0
    skip_special_tokens: bool = True
    without_timestamps: bool = True


class TranscriptionEngine(Protocol):
    model_folder: Optional[Path]

    def transcribe(self, samples: Sequence[float], options: DecodingOptions) -> str: ...

    def load_models(self, path: Path) -> None: ...

    def prewarm(self) -> None: ...

    def unload(self) -> None: ...


class WhisperEngine:
    """Thin wrapper that loads Whisper from a local folder and falls back to mock mode."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.model_folder: Optional[Path] = None
        self._lock = threading.Lock()
        self._model = None
        self._mock = settings.whisper_mock_transcriber or WhisperModel is None
        if self._mock:
            LOGGER.warning(
                "Whisper mock mode enabled (set WHISPER_USE_MOCK=0 and install "
                "faster-whisper to enable real transcription)."
            )

    @property
    def is_loaded(self) -> bool:
        return self._mock or self._model is not None

    def _load_model(self) -> WhisperModel:
        if self._mock:
            raise RuntimeError("Mock mode does not load real Whisper models")
        if self.model_folder is None:
            raise RuntimeError("model_folder must be set before loading")
        if self._model is None:
            with self._lock:
                if self._model is None:
                    try:
                        self._model = WhisperModel(
                            str(self.model_folder),
                            device=self.settings.whisper_device,
                            compute_type=self.settings.whisper_compute_type,
                        )
                    except Exception as exc:  # pragma: no cover - hardware/env dep
                        LOGGER.error(
                            "Failed to load Whisper model from '%s': %s",
                            self.model_folder,
                            exc,
                        )
                        raise
        return self._model

    def load_models(self, path: Path) -> None:
        path = Path(path)
        if self.model_folder != path:
            self.unload()
            self.model_folder = path
        if not self._mock:
            self._load_model()

    def prewarm(self) -> None:
        """Load the model and run one decode over a second of silence."""
        if self._mock:
            return
        model = self._load_model()
        silence = np.zeros(self.settings.sample_rate, dtype=np.float32)
        segments, _ = model.transcribe(silence, beam_size=1, language=self.settings.language)
        for _ in segments:
            pass

    def unload(self) -> None:
        with self._lock:
            self._model = None

    def transcribe(self, samples: Sequence[float], options: DecodingOptions) -> str:
        audio = np.asarray(samples, dtype=np.float32)
        if self._mock:
            duration = len(audio) / float(self.settings.sample_rate)
            return f"[mock transcript {len(audio)} samples / {duration:.1f}s]"
        model = self._load_model()
        segments, _ = model.transcribe(
            audio,
            language=options.language,
            temperature=options.temperature,
            beam_size=1,
            without_timestamps=options.without_timestamps,
            condition_on_previous_text=False,
        )
        return _join_segments(segments, strip_special=options.skip_special_tokens)


def _join_segments(segments: Iterable, *, strip_special: bool) -> str:
    pieces = []
    for segment in segments:
        text = segment.text
        if strip_special:
            text = _SPECIAL_TOKEN.sub("", text)
        pieces.append(text.strip())
    return " ".join(piece for piece in pieces if piece).strip()
