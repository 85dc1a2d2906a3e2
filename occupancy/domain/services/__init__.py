"""Pure domain services: analytics and feature extraction."""

from . import occupancy_analytics
from .feature_extractor import FeatureExtractor, cyclical_encode

__all__ = ["FeatureExtractor", "cyclical_encode", "occupancy_analytics"]
