"""Client library for the OneDrive REST API."""

__version__ = "0.1.0"
