"""Command-line client for the Rubrik CDM REST API."""

__version__ = "0.1.0"
