"""End-to-end deal workflow runner for the SONM marketplace CLI."""

__version__ = "0.1.0"
