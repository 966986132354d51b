"""Robolly template rendering client with local media conversion."""

__version__ = "0.1.0"
