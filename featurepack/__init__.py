"""Streaming parser for feature pack build descriptors."""

__version__ = "1.0.0"
