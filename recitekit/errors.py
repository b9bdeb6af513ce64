"""Exception hierarchy shared by the scheduling and asset sync cores."""

from __future__ import annotations


class RecitekitError(Exception):
    pass


class PermissionDenied(RecitekitError):
    """The capture device refused microphone access."""


class ModelNotReady(RecitekitError):
    """Recording was requested before the model finished loading."""


class IllegalTransition(RecitekitError):
    def __init__(self, current, target) -> None:
        super().__init__(f"Illegal scheduler transition {current.value} -> {target.value}")
        self.current = current
        self.target = target


class EngineInvocationError(RecitekitError):
    """A transcription call failed; fatal to the recording session."""


class SyncError(RecitekitError):
    """Base class for failures that abort an asset sync."""


class ManifestFetchError(SyncError):
    pass


class FileFetchError(SyncError):
    pass


class FilesystemError(SyncError):
    pass
