"""Audio buffering, energy sampling, voice gating and live capture."""
