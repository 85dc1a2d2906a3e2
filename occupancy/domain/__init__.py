"""
Domain module - Business rules / Domain Layer

Contains the entities, error hierarchy, repository interfaces, ports and
pure services of the occupancy core. Nothing in this package performs I/O.
"""
