"""
Dockhand - declarative, idempotent lifecycle management for containers.

Compares the containers a manifest declares with the containers a runtime
reports, plans the minimal set of changes, and applies them tier by tier
(or only describes them, in a dry run).
"""

__version__ = "1.0.0"

# Re-export key components for easier access
from dockhand.models.config import ComposeConfig
from dockhand.models.container import ContainerName, ContainerSpec, ObservedContainer
from dockhand.models.manifest import Manifest
from dockhand.models.report import RunReport

__all__ = [
    "ComposeConfig",
    "ContainerName",
    "ContainerSpec",
    "ObservedContainer",
    "Manifest",
    "RunReport",
]
