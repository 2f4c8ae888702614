"""
Deployment: provision the game contracts and persist their artifacts.
"""

from .artifacts import ArtifactStore, ContractDescriptor, DeploymentRecord
from .orchestrator import DeploymentOrchestrator, DeploymentResult
from .summary import render_summary

__all__ = [
    "ArtifactStore",
    "ContractDescriptor",
    "DeploymentOrchestrator",
    "DeploymentRecord",
    "DeploymentResult",
    "render_summary",
]
