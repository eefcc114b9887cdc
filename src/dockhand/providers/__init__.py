"""Container runtime clients for dockhand."""

from dockhand.providers.base import RuntimeClient
from dockhand.providers.docker_runtime import DockerRuntime

__all__ = [
    "RuntimeClient",
    "DockerRuntime",
]
