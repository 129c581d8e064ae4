"""Bay Digital customer dashboard API."""

__version__ = "0.1.0"
