"""Moodring session and activity engine."""

__version__ = "0.1.0"
