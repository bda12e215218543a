"""Operational metrics."""

from .metrics import PipelineMetrics

__all__ = ["PipelineMetrics"]
