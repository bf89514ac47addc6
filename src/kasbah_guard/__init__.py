"""Kasbah Guard local decision authority."""

__version__ = "0.1.0"
