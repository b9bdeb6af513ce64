"""Live recitation transcription core and model asset sync."""

__version__ = "0.1.0"
