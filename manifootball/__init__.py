"""Manifootball: market maintenance and live game tools."""

__version__ = "1.0.0"
