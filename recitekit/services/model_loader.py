"""Model lifecycle: sync assets if missing, then prewarm and load the engine."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Optional

from ..observable import Observable
from ..settings import Settings
from .asset_sync import AssetSynchronizer, SyncProgress
from .whisper_engine import TranscriptionEngine

LOGGER = logging.getLogger("recitekit.loader")

PREWARMED_PROGRESS = 0.95


class ModelState(enum.Enum):
    UNLOADED = "unloaded"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    PREWARMING = "prewarming"
    PREWARMED = "prewarmed"
    LOADING = "loading"
    LOADED = "loaded"
    UNLOADING = "unloading"


class ModelLoader:
    """Publishes ``state`` and ``progress`` while bringing the engine up.

    Asset sync only runs when the marker file is missing from the local model
    folder and fills the first ``sync_progress_weight`` of the progress bar.
    """

    def __init__(
        self,
        settings: Settings,
        engine: TranscriptionEngine,
        synchronizer: AssetSynchronizer,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.synchronizer = synchronizer
        self.state: Observable[ModelState] = Observable(ModelState.UNLOADED)
        self.progress: Observable[float] = Observable(0.0)
        self.last_error: Optional[Exception] = None

    @property
    def is_ready(self) -> bool:
        return self.state.value is ModelState.LOADED

    def assets_present(self) -> bool:
        folder = self.settings.model_folder
        return folder.is_dir() and self.settings.marker_path.exists()

    async def load(self) -> None:
        if self.state.value is not ModelState.UNLOADED:
            LOGGER.debug("Load ignored in state %s", self.state.value.value)
            return
        self.last_error = None
        folder = self.settings.model_folder
        weight = self.settings.sync_progress_weight
        try:
            if not self.assets_present():
                self.state.set(ModelState.DOWNLOADING)
                await self.synchronizer.sync(
                    self.settings.model_repo, folder, self._on_sync_progress, weight
                )
                self.state.set(ModelState.DOWNLOADED)
            else:
                LOGGER.info("Model already present at %s", folder)

            self.progress.set(weight)
            self.state.set(ModelState.PREWARMING)
            self.engine.model_folder = folder
            await asyncio.to_thread(self.engine.prewarm)
            self.state.set(ModelState.PREWARMED)

            self.progress.set(PREWARMED_PROGRESS)
            self.state.set(ModelState.LOADING)
            await asyncio.to_thread(self.engine.load_models, folder)
            self.progress.set(1.0)
            self.state.set(ModelState.LOADED)
        except Exception as exc:
            LOGGER.error("Error loading model: %s", exc)
            self.last_error = exc
            self.progress.set(0.0)
            self.state.set(ModelState.UNLOADED)
            raise
        LOGGER.info("Model loaded from %s", folder)

    async def unload(self) -> None:
        if self.state.value is not ModelState.LOADED:
            return
        self.state.set(ModelState.UNLOADING)
        await asyncio.to_thread(self.engine.unload)
        self.progress.set(0.0)
        self.state.set(ModelState.UNLOADED)

    def _on_sync_progress(self, progress: SyncProgress) -> None:
        self.progress.set(progress.fraction)
