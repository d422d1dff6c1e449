"""AeroMatch domain engine: matching, lifecycle, scoring, and billing rules."""

__version__ = "0.4.0"
