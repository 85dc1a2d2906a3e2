"""Data transfer objects of the application layer."""

from .snapshot_dto import ModelSnapshotDTO, ModelSummaryDTO, SlotStatisticsDTO

__all__ = ["ModelSnapshotDTO", "ModelSummaryDTO", "SlotStatisticsDTO"]
