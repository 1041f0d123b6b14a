"""Magenta: interactive front-end for conversational AI agents."""

__version__ = "0.4.0"
