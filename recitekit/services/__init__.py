"""Transcription scheduling, asset sync and model lifecycle services."""
