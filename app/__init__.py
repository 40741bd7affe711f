"""Fliplet App Assistant: chat with an app's data sources and media files."""

__version__ = "0.1.0"
