"""Actions an execution plan is made of.

The set is closed: every plan step is one of :class:`CreateContainer`,
:class:`RemoveContainer`, :class:`EnsureState`, :class:`PullImage` or
:class:`Noop`. Each action can describe itself (dry run) and apply itself
against a runtime client (real run). Applying returns an
:class:`ActionResult` owned by the worker, so concurrent actions never
share mutable bookkeeping.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterable, List

from dockhand.models.container import ContainerRef, ContainerSpec, ObservedContainer
from dockhand.providers.base import RuntimeClient


logger = logging.getLogger(__name__)


def truncate_id(container_id: str) -> str:
    """Short form of a runtime id, as shown by ``docker ps``."""
    return (container_id or "")[:12]


@dataclass
class ActionResult:
    """Bookkeeping produced by one applied action."""
    created: List[ContainerRef] = field(default_factory=list)
    removed: List[ContainerRef] = field(default_factory=list)
    pulled: List[str] = field(default_factory=list)

    def merge(self, other: "ActionResult") -> None:
        """Append another worker's results to this one."""
        self.created.extend(other.created)
        self.removed.extend(other.removed)
        self.pulled.extend(other.pulled)


class Action(ABC):
    """Base of the closed action set."""

    kind: ClassVar[str] = ""

    @abstractmethod
    def describe(self) -> str:
        """Human readable description of the intended effect."""

    @abstractmethod
    def apply(self, client: RuntimeClient, wait: float) -> ActionResult:
        """Execute the action against the runtime."""

    @property
    def mutating(self) -> bool:
        """Whether applying the action changes runtime state."""
        return True


@dataclass(frozen=True)
class CreateContainer(Action):
    """Create a container and start it when its desired state is running."""
    container: ContainerSpec
    kind: ClassVar[str] = "create"

    def describe(self) -> str:
        return f"Create container {self.container.name} from {self.container.image}"

    def apply(self, client: RuntimeClient, wait: float) -> ActionResult:
        result = ActionResult()
        if client.fetch_image(self.container.image):
            result.pulled.append(self.container.image)

        logger.info(f"Creating container {self.container.name}")
        container_id = client.create_and_start(self.container)
        logger.debug(f"Created container {self.container.name} (id: {truncate_id(container_id)})")
        result.created.append(ContainerRef(id=container_id, name=str(self.container.name)))
        return result


@dataclass(frozen=True)
class RemoveContainer(Action):
    """Stop and delete a running container."""
    container: ObservedContainer
    kind: ClassVar[str] = "remove"

    def describe(self) -> str:
        return f"Remove container {self.container.name} (id: {truncate_id(self.container.id)})"

    def apply(self, client: RuntimeClient, wait: float) -> ActionResult:
        logger.info(f"Removing container {self.container.name} (id: {truncate_id(self.container.id)})")
        client.stop_and_remove(self.container.id, wait)
        return ActionResult(
            removed=[ContainerRef(id=self.container.id, name=str(self.container.name))]
        )


@dataclass(frozen=True)
class EnsureState(Action):
    """Start or stop an up-to-date container to match its desired state."""
    container: ContainerSpec
    observed: ObservedContainer
    kind: ClassVar[str] = "ensure"

    def describe(self) -> str:
        verb = "Start" if self.container.is_running() else "Stop"
        return f"{verb} container {self.container.name} (id: {truncate_id(self.observed.id)})"

    def apply(self, client: RuntimeClient, wait: float) -> ActionResult:
        if self.container.is_running():
            logger.info(f"Container {self.container.name} should be running, starting")
            client.start(self.observed.id)
        else:
            logger.info(f"Container {self.container.name} should be stopped, stopping")
            client.stop(self.observed.id, wait)
        return ActionResult()


@dataclass(frozen=True)
class PullImage(Action):
    """Make sure an image is present before containers are created from it."""
    image: str
    kind: ClassVar[str] = "pull"

    def describe(self) -> str:
        return f"Pull image {self.image} if missing"

    def apply(self, client: RuntimeClient, wait: float) -> ActionResult:
        if client.fetch_image(self.image):
            return ActionResult(pulled=[self.image])
        logger.debug(f"Image {self.image} already present")
        return ActionResult()


@dataclass(frozen=True)
class Noop(Action):
    """Container already matches its spec."""
    container: ContainerSpec
    kind: ClassVar[str] = "noop"

    def describe(self) -> str:
        return f"Container {self.container.name} is up to date"

    def apply(self, client: RuntimeClient, wait: float) -> ActionResult:
        return ActionResult()

    @property
    def mutating(self) -> bool:
        return False


def walk_actions(actions: Iterable[Action], fn: Callable[[Action], None]) -> None:
    """Call ``fn`` for every action in order."""
    for action in actions:
        fn(action)
