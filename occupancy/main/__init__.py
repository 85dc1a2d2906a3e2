"""
Main module - Main/Composition Root Layer

Settings and the dependency injection container that wires the record
store, schedule, clock, snapshot storage, predictor and use cases together.
"""

from .config import AppSettings, get_settings
from .container import AppContainer, app_lifespan, get_container, init_container

__all__ = [
    "AppSettings",
    "get_settings",
    "AppContainer",
    "app_lifespan",
    "init_container",
    "get_container",
]
