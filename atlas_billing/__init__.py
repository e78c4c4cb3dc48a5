"""Prometheus exporter for MongoDB Atlas billing line items."""

__version__ = "0.4.0"
