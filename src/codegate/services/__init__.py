"""Pipeline orchestration services."""

from .state_machine import AnalysisStateMachine
from .gate_resolver import GateResolver
from .orchestrator import PipelineOrchestrator
from .job_handlers import AnalysisJobHandler, RemediationJobHandler
from .pipeline_service import PipelineService

__all__ = [
    "AnalysisStateMachine",
    "GateResolver",
    "PipelineOrchestrator",
    "AnalysisJobHandler",
    "RemediationJobHandler",
    "PipelineService",
]
