"""Personalized feed reader: ingest, score by interest, read and discard."""

__version__ = "0.1.0"
