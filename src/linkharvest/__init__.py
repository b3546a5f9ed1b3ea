"""Resolve hoster page URLs into playable stream descriptors."""

__version__ = "0.1.0"
