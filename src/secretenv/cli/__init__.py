"""Command-line interface for secretenv."""
