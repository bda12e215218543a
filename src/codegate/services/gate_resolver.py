"""Quality gate lookup for a project."""

from typing import Optional

from ..config.gate_config import GateConfigLoader
from ..models.quality_models import QualityGate
from ..persistence.base import AnalysisStore


class GateResolver:
    """Precedence: stored project gate > configured project gate > configured default."""

    def __init__(self, store: AnalysisStore, gate_config: Optional[GateConfigLoader] = None):
        self.store = store
        self.gate_config = gate_config

    async def resolve(self, project_id: str) -> Optional[QualityGate]:
        gate = await self.store.get_quality_gate(project_id)
        if gate is not None:
            return gate
        if self.gate_config is not None:
            return self.gate_config.gate_for(project_id)
        return None
