"""Matchcast: cross-sport match outcome predictions."""

__version__ = "1.0.0"
