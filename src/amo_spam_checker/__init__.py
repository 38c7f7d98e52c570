"""Spam checking of inbound call numbers for amoCRM leads."""

__version__ = "1.0.0"
