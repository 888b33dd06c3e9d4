"""Interruption-safe meeting recording with remote and segmented transcription."""

__version__ = "0.1.0"
