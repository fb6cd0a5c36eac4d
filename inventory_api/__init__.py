"""Unit inventory and reservation API for the real-estate back office."""

__version__ = "1.0.0"
