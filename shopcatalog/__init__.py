"""Storefront product catalog."""

__version__ = "0.1.0"
