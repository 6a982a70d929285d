"""Shelfscan - barcode decoding and product matching for expiry tracking."""

__version__ = "0.1.0"
