"""Collectory - module contracts and metadata provider aggregation."""

__version__ = "0.1.0"
