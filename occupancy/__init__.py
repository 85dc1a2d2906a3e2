"""Occupancy core: data repair, analytics and short-term occupancy forecasting."""

__version__ = "1.0.0"
