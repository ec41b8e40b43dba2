from .data_structures import (
    CollectingSink,
    FragmentSink,
    OrchestratorConfig,
    TurnPhase,
    TurnReport,
    UsageSummary,
)
from .orchestrator import ChatOrchestrator

__all__ = [
    "ChatOrchestrator",
    "CollectingSink",
    "FragmentSink",
    "OrchestratorConfig",
    "TurnPhase",
    "TurnReport",
    "UsageSummary",
]
