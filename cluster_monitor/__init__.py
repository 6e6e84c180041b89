"""Terminal dashboard for cluster topology monitoring."""

__version__ = "0.3.0"
