"""Eventwire: prediction-market events enriched with related news."""

__version__ = "0.1.0"
__author__ = "Eventwire Team"

__all__ = ["__version__", "__author__"]
