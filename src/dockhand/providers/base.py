"""Runtime client interface."""

from abc import ABC, abstractmethod
from typing import List

from dockhand.models.container import ContainerSpec, ObservedContainer
from dockhand.models.manifest import Manifest


class RuntimeClient(ABC):
    """Capability interface every container runtime transport implements.

    Implementations must be safe for concurrent use: the runner calls
    :meth:`create_and_start`, :meth:`stop_and_remove` and the image methods
    from several worker threads at once.
    """

    @abstractmethod
    def get_containers(self, namespace: str = "") -> List[ObservedContainer]:
        """List managed containers, optionally limited to one namespace."""
        pass

    @abstractmethod
    def fetch_image(self, image: str) -> bool:
        """Pull ``image`` unless it is already present locally.

        Returns True when the image had to be pulled.
        """
        pass

    def fetch_images(self, specs: List[ContainerSpec]) -> None:
        """Ensure every image referenced by ``specs`` is present locally."""
        seen = set()
        for spec in specs:
            if spec.image not in seen:
                seen.add(spec.image)
                self.fetch_image(spec.image)

    @abstractmethod
    def pull_all(self, manifest: Manifest) -> None:
        """Pull every image of the manifest, present or not."""
        pass

    @abstractmethod
    def clean(self, manifest: Manifest) -> None:
        """Remove old, unused tags of the manifest's images."""
        pass

    @abstractmethod
    def attach_to_containers(self, specs: List[ContainerSpec]) -> None:
        """Stream output of the given containers until they all exit."""
        pass

    @abstractmethod
    def get_pulled_images(self) -> List[str]:
        """Images pulled by this client so far."""
        pass

    @abstractmethod
    def get_removed_images(self) -> List[str]:
        """Images removed by this client so far."""
        pass

    @abstractmethod
    def create_and_start(self, spec: ContainerSpec) -> str:
        """Create the container, start it if desired, and return its id."""
        pass

    @abstractmethod
    def stop_and_remove(self, container_id: str, grace: float) -> None:
        """Stop the container, giving it ``grace`` seconds, then delete it."""
        pass

    @abstractmethod
    def start(self, container_id: str) -> None:
        """Start an existing container."""
        pass

    @abstractmethod
    def stop(self, container_id: str, grace: float) -> None:
        """Stop a running container."""
        pass
