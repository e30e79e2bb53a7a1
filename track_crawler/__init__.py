"""Async music catalog crawler with a searchable, grouped library view."""

from .version import __version__

__all__ = ["__version__"]
