"""Manifest models."""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dockhand.models.container import NAME_RE, ContainerSpec


class Manifest(BaseModel):
    """Set of containers deployed together under one namespace."""
    model_config = ConfigDict(extra="ignore")

    namespace: str = Field(..., description="Namespace owning every container")
    containers: Dict[str, ContainerSpec] = Field(default_factory=dict)

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v):
        """Namespace must be usable as a container name prefix."""
        if not NAME_RE.match(v):
            raise ValueError(f"Invalid namespace: {v!r}")
        return v

    def specs(self) -> List[ContainerSpec]:
        """Container specs in declaration order."""
        return list(self.containers.values())

    def images(self) -> List[str]:
        """Distinct image references in declaration order."""
        images: List[str] = []
        for spec in self.containers.values():
            if spec.image not in images:
                images.append(spec.image)
        return images
