"""Configuration for the analysis pipeline."""

from .pipeline_config import PipelineConfig
from .gate_config import GateConfigLoader

__all__ = ["PipelineConfig", "GateConfigLoader"]
