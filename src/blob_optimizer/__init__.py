"""Blob optimizer: re-encode uploaded images in place."""

__version__ = "0.1.0"
