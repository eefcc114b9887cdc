"""Container specification models."""

import hashlib
import json
import re
import shlex
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$")

# Fields that decide whether a running container is the "same kind" as a
# spec. Anything not listed here never causes a container to be recreated.
SIGNATURE_FIELDS = (
    "image",
    "cmd",
    "entrypoint",
    "env",
    "labels",
    "volumes",
    "volumes_from",
    "links",
    "ports",
    "net",
    "restart",
    "user",
    "workdir",
    "hostname",
)

# Signature fields whose order carries no meaning to the runtime.
UNORDERED_FIELDS = frozenset({"volumes", "volumes_from", "links", "ports"})


class ContainerName(BaseModel):
    """Namespaced container name."""
    model_config = ConfigDict(frozen=True)

    namespace: str = Field(default="", description="Isolation scope, usually the manifest name")
    name: str = Field(..., description="Container name within the namespace")

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v):
        """Validate namespace; empty means global."""
        if v and not NAME_RE.match(v):
            raise ValueError(f"Invalid namespace: {v!r}")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Validate local name."""
        if not NAME_RE.match(v):
            raise ValueError(f"Invalid container name: {v!r}")
        return v

    @classmethod
    def parse(cls, ref: str, default_namespace: str = "") -> "ContainerName":
        """Parse ``name`` or ``namespace.name``."""
        if "." in ref:
            namespace, name = ref.split(".", 1)
            return cls(namespace=namespace, name=name)
        return cls(namespace=default_namespace, name=ref)

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}.{self.name}"
        return self.name


def _coerce_name(v: Any) -> Any:
    if isinstance(v, str):
        return ContainerName.parse(v)
    return v


def _coerce_str_map(v: Any) -> Any:
    if v is None:
        return {}
    if isinstance(v, dict):
        return {str(key): "" if value is None else str(value) for key, value in v.items()}
    return v


def _coerce_str_list(v: Any) -> Any:
    if v is None:
        return []
    if isinstance(v, (str, int)):
        return [str(v)]
    return [str(item) for item in v]


class ContainerSpec(BaseModel):
    """Desired container, as declared in a manifest."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: ContainerName
    image: str = Field(..., description="Image reference, e.g. nginx:1.25")
    state: Literal["running", "stopped"] = Field(default="running")
    cmd: Optional[List[str]] = None
    entrypoint: Optional[List[str]] = None
    env: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    volumes: List[str] = Field(default_factory=list, description="Mounts, host:container[:mode]")
    volumes_from: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list, description="Links, name[:alias]")
    ports: List[str] = Field(default_factory=list)
    net: Optional[str] = None
    restart: Optional[str] = None
    user: Optional[str] = None
    workdir: Optional[str] = None
    hostname: Optional[str] = None
    wait_for: List[str] = Field(default_factory=list, description="Ordering-only dependencies")

    # Runtime identifier, assigned once a matching container is found
    id: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def parse_name(cls, v):
        """Accept ``name`` or ``namespace.name`` strings."""
        return _coerce_name(v)

    @field_validator("env", "labels", mode="before")
    @classmethod
    def stringify_maps(cls, v):
        """YAML scalars such as numbers and booleans become strings."""
        return _coerce_str_map(v)

    @field_validator("volumes", "volumes_from", "links", "ports", "wait_for", mode="before")
    @classmethod
    def stringify_lists(cls, v):
        """Accept a single value or a list of scalars."""
        return _coerce_str_list(v)

    @field_validator("cmd", "entrypoint", mode="before")
    @classmethod
    def split_command(cls, v):
        """Accept a shell-style string as well as an argv list."""
        if isinstance(v, str):
            return shlex.split(v)
        if v is not None:
            return [str(arg) for arg in v]
        return v

    @field_validator("image")
    @classmethod
    def validate_image(cls, v):
        """Image must be a non-empty reference."""
        if not v or not v.strip():
            raise ValueError("image must not be empty")
        return v.strip()

    def signature(self) -> str:
        """Stable content hash of the fields that affect the running container."""
        payload: Dict[str, Any] = {}
        for field in SIGNATURE_FIELDS:
            value = getattr(self, field)
            # None, "", [] and {} are the runtime's own defaults
            if not value:
                continue
            if field in UNORDERED_FIELDS:
                value = sorted(value)
            payload[field] = value
        data = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(data.encode()).hexdigest()

    def _resolve(self, ref: str) -> ContainerName:
        return ContainerName.parse(ref, self.name.namespace)

    def hard_dependencies(self) -> List[ContainerName]:
        """Dependencies the runtime binds to a specific container instance."""
        deps = [self._resolve(link.split(":", 1)[0]) for link in self.links]
        deps.extend(self._resolve(ref) for ref in self.volumes_from)
        if self.net and self.net.startswith("container:"):
            deps.append(self._resolve(self.net[len("container:"):]))
        return _unique(deps)

    def dependencies(self) -> List[ContainerName]:
        """All containers that must exist before this one is created."""
        deps = self.hard_dependencies()
        deps.extend(self._resolve(ref) for ref in self.wait_for)
        return _unique(deps)

    def is_running(self) -> bool:
        """Whether the desired state is running."""
        return self.state == "running"


class ObservedContainer(BaseModel):
    """Container as reported by the runtime."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: ContainerName
    running: bool = False
    status: str = ""
    exit_code: Optional[int] = None
    # Configuration the container was created from; None for foreign containers
    config: Optional[ContainerSpec] = None

    @field_validator("name", mode="before")
    @classmethod
    def parse_name(cls, v):
        """Accept ``name`` or ``namespace.name`` strings."""
        return _coerce_name(v)


class ContainerRef(BaseModel):
    """Identifier and name pair used for reporting."""
    id: str = ""
    name: str


def _unique(names: List[ContainerName]) -> List[ContainerName]:
    seen = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


def matches_kind(desired: ContainerSpec, observed: ObservedContainer) -> bool:
    """True when ``observed`` runs exactly what ``desired`` would create."""
    if desired.name != observed.name or observed.config is None:
        return False
    return desired.signature() == observed.config.signature()


def assign_identity(
    expected: List[ContainerSpec], actual: List[ObservedContainer]
) -> List[ContainerSpec]:
    """Carry runtime ids of same-kind containers over to the expected specs."""
    result = []
    for spec in expected:
        for observed in actual:
            if matches_kind(spec, observed):
                spec = spec.model_copy(update={"id": observed.id})
                break
        result.append(spec)
    return result
