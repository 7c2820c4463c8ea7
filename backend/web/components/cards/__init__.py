"""
Card components for the registry dashboards.
"""

from .stat import StatCard, WinnerCard

__all__ = ["StatCard", "WinnerCard"]
