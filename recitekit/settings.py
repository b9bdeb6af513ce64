"""Runtime settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    app_name: str = Field(default="recitekit")
    model_repo: str = Field(default=os.getenv("MODEL_REPO", "Systran/faster-whisper-base"))
    hub_endpoint: str = Field(default=os.getenv("HUB_ENDPOINT", "https://huggingface.co"))
    hub_revision: str = Field(default=os.getenv("HUB_REVISION", "main"))
    models_dir: str = Field(default=os.getenv("MODELS_DIR", "data/models"))
    model_marker_file: str = Field(default=os.getenv("MODEL_MARKER_FILE", "model.bin"))
    language: str = Field(default=os.getenv("TRANSCRIBE_LANGUAGE", "ar"))
    sample_rate: int = Field(default=int(os.getenv("SAMPLE_RATE", "16000")))
    energy_window_seconds: float = Field(
        default=float(os.getenv("ENERGY_WINDOW_SECONDS", "0.1"))
    )
    silence_threshold: float = Field(default=float(os.getenv("SILENCE_THRESHOLD", "0.3")))
    use_vad: bool = Field(default=_env_flag("USE_VAD", "true"))
    min_new_audio_seconds: float = Field(
        default=float(os.getenv("MIN_NEW_AUDIO_SECONDS", "1.0"))
    )
    poll_interval_seconds: float = Field(
        default=float(os.getenv("POLL_INTERVAL_SECONDS", "0.1"))
    )
    sync_progress_weight: float = Field(
        default=float(os.getenv("SYNC_PROGRESS_WEIGHT", "0.7")), ge=0.0, le=1.0
    )
    whisper_device: str = Field(default=os.getenv("WHISPER_DEVICE", "cpu"))
    whisper_compute_type: str = Field(
        default=os.getenv("WHISPER_COMPUTE_TYPE", "int8")
    )
    whisper_mock_transcriber: bool = Field(default=_env_flag("WHISPER_USE_MOCK", "false"))
    http_timeout_seconds: float = Field(
        default=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
    )
    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))

    @property
    def model_folder(self) -> Path:
        """Local mirror of ``model_repo`` under ``models_dir``."""
        return Path(self.models_dir) / self.model_repo

    @property
    def marker_path(self) -> Path:
        return self.model_folder / self.model_marker_file


@lru_cache()
def get_settings() -> Settings:
    return Settings()
