"""Batch loudness normalization of Anki audio files."""

__version__ = "0.1.0"
