"""
Infrastructure module - Adapters / Infrastructure Layer

MongoDB record store, JSON snapshot store, clock and schedule adapters.
"""
