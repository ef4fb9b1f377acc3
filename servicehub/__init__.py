"""servicehub: booking lifecycle and wallet settlement core for a service marketplace."""

__version__ = "1.0.0"
