"""Resolve sem:// secret references into flat environment variables."""

__version__ = "0.4.0"
