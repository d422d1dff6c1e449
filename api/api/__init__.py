"""AeroMatch marketplace HTTP API."""

__version__ = "0.4.0"
