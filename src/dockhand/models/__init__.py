"""Pydantic models for containers, manifests and configuration."""

from dockhand.models.config import AuthConfig, ComposeConfig, DockerRuntimeConfig
from dockhand.models.container import (
    ContainerName,
    ContainerRef,
    ContainerSpec,
    ObservedContainer,
    assign_identity,
    matches_kind,
)
from dockhand.models.manifest import Manifest
from dockhand.models.report import RunReport

__all__ = [
    "AuthConfig",
    "ComposeConfig",
    "DockerRuntimeConfig",
    "ContainerName",
    "ContainerRef",
    "ContainerSpec",
    "ObservedContainer",
    "assign_identity",
    "matches_kind",
    "Manifest",
    "RunReport",
]
