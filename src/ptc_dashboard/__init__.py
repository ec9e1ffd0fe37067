"""PTC conference sign-up dashboard."""

__version__ = "0.3.0"
