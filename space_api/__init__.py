"""Cached proxy for third-party space data APIs."""

__version__ = "1.0.0"
