"""IT operations administration console API."""

__version__ = "0.1.0"
