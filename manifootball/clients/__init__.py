"""API clients for the statistics and market platforms."""

from .manifold_client import ManifoldClient, ManifoldError
from .stats_client import StatsClient

__all__ = ["ManifoldClient", "ManifoldError", "StatsClient"]
