"""Cantina order queue."""

__version__ = "0.1.0"
