"""Podnapisi UTF-8 wrapper for Stremio subtitles."""

__version__ = "1.3.0"
