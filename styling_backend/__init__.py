"""Credits backend for the styling app."""

__version__ = "1.0.0"
