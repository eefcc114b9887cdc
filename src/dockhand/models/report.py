"""Run report returned to external callers."""

from typing import List

from pydantic import BaseModel, Field

from dockhand.models.container import ContainerRef


class RunReport(BaseModel):
    """What a run changed."""
    removed: List[ContainerRef] = Field(default_factory=list)
    created: List[ContainerRef] = Field(default_factory=list)
    pulled: List[str] = Field(default_factory=list)
    cleaned: List[str] = Field(default_factory=list)
    changed: bool = False

    @classmethod
    def build(cls, removed, created, pulled, cleaned) -> "RunReport":
        """Build a report; ``changed`` is set when any list is non-empty."""
        return cls(
            removed=list(removed),
            created=list(created),
            pulled=list(pulled),
            cleaned=list(cleaned),
            changed=bool(removed or created or pulled or cleaned),
        )
