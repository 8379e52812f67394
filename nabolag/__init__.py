"""Nabolag API: neighborhood posts with a 14-day lifecycle."""

__version__ = "0.1.0"
