"""Logging adapters, message interfaces, retrying and forwarding publishers, and a subscriber multiplier."""

__version__ = "1.2.0"