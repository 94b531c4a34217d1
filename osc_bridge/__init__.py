"""Relay-to-OSC bridge."""

__version__ = "0.1.0"
