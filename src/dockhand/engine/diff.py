"""Diff of expected and actual containers into an execution plan."""

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterator, List, Sequence

from dockhand.engine.actions import (
    Action,
    CreateContainer,
    EnsureState,
    Noop,
    PullImage,
    RemoveContainer,
    walk_actions,
)
from dockhand.errors import DependencyCycleError, DuplicateNameError, MissingDependencyError, PlanError
from dockhand.models.container import ContainerName, ContainerSpec, ObservedContainer, matches_kind


logger = logging.getLogger(__name__)


class ExecutionPlan:
    """Ordered tiers of actions.

    Actions inside a tier are independent of each other and may run
    concurrently; tiers run strictly one after another.
    """

    def __init__(self, tiers: Sequence[Sequence[Action]] = ()):
        self.tiers = tuple(tuple(tier) for tier in tiers if tier)

    @property
    def actions(self) -> List[Action]:
        """All actions in execution order."""
        return [action for tier in self.tiers for action in tier]

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return sum(len(tier) for tier in self.tiers)

    def is_noop(self) -> bool:
        """True when executing the plan would change nothing."""
        return not any(action.mutating for action in self)

    def describe(self) -> List[str]:
        """Descriptions of every mutating action, in order."""
        return [action.describe() for action in self if action.mutating]

    def walk(self, fn: Callable[[Action], None]) -> None:
        """Call ``fn`` for every action in order."""
        walk_actions(self.actions, fn)

    def __repr__(self) -> str:
        return f"ExecutionPlan(tiers={len(self.tiers)}, actions={len(self)})"


class Diff:
    """Computes the plan converging actual containers of a namespace to the expected ones.

    An empty namespace means every managed container is in scope. With
    ``prefetch`` the plan starts with a tier pulling the images of every
    container it creates, so a registry failure aborts the run before any
    container is touched.
    """

    def __init__(self, namespace: str = "", prefetch: bool = False):
        self.namespace = namespace
        self.prefetch = prefetch

    def owns(self, name: ContainerName) -> bool:
        """Whether a container belongs to the namespace being planned."""
        return not self.namespace or name.namespace == self.namespace

    def diff(
        self, expected: Sequence[ContainerSpec], actual: Sequence[ObservedContainer]
    ) -> ExecutionPlan:
        """Build the execution plan; raises :class:`PlanError` on invalid input."""
        expected = list(expected)
        by_name = self._validate(expected, actual)
        depths = self._depths(by_name)

        mine = {c.name: c for c in actual if self.owns(c.name)}

        removals: List[ObservedContainer] = []
        for observed in mine.values():
            if observed.name not in by_name:
                logger.debug(f"Container {observed.name} is not in the manifest, removing")
                removals.append(observed)

        created = set()
        tiers: Dict[int, List[Action]] = defaultdict(list)
        for spec in sorted(expected, key=lambda s: depths[s.name]):
            observed = mine.get(spec.name)
            if observed is None:
                action: Action = CreateContainer(spec)
                created.add(spec.name)
            elif matches_kind(spec, observed) and not any(
                dep in created for dep in spec.hard_dependencies()
            ):
                if spec.is_running() == observed.running:
                    action = Noop(spec)
                else:
                    action = EnsureState(spec, observed)
            else:
                if matches_kind(spec, observed):
                    logger.debug(f"Container {spec.name} depends on a recreated container, recreating")
                else:
                    logger.debug(f"Container {spec.name} configuration changed, recreating")
                removals.append(observed)
                action = CreateContainer(spec.model_copy(update={"id": None}))
                created.add(spec.name)
            tiers[depths[spec.name]].append(action)

        pulls: List[Action] = []
        if self.prefetch:
            images: List[str] = []
            for depth in sorted(tiers):
                for action in tiers[depth]:
                    if isinstance(action, CreateContainer) and action.container.image not in images:
                        images.append(action.container.image)
            pulls = [PullImage(image) for image in images]

        plan = ExecutionPlan(
            [pulls]
            + self._removal_tiers(removals)
            + [tiers[depth] for depth in sorted(tiers)]
        )
        logger.debug(f"Planned {plan} for namespace {self.namespace or '*'}")
        return plan

    def _validate(
        self, expected: List[ContainerSpec], actual: Sequence[ObservedContainer]
    ) -> Dict[ContainerName, ContainerSpec]:
        by_name: Dict[ContainerName, ContainerSpec] = {}
        for spec in expected:
            if spec.name in by_name:
                raise DuplicateNameError(spec.name)
            if not self.owns(spec.name):
                raise PlanError(
                    f"Container {spec.name} does not belong to namespace {self.namespace}"
                )
            by_name[spec.name] = spec

        running = {c.name for c in actual}
        for spec in expected:
            for dep in spec.dependencies():
                if dep in by_name:
                    continue
                # Containers of other namespaces are only required to exist
                if dep.namespace != spec.name.namespace and dep in running:
                    continue
                raise MissingDependencyError(spec.name, dep)
        return by_name

    @staticmethod
    def _depths(by_name: Dict[ContainerName, ContainerSpec]) -> Dict[ContainerName, int]:
        """Topological depth of every expected container."""
        depths: Dict[ContainerName, int] = {}
        path: List[ContainerName] = []

        def visit(name: ContainerName) -> int:
            if name in depths:
                return depths[name]
            if name in path:
                raise DependencyCycleError(path[path.index(name):] + [name])
            path.append(name)
            deps = [dep for dep in by_name[name].dependencies() if dep in by_name]
            depth = 1 + max((visit(dep) for dep in deps), default=-1)
            path.pop()
            depths[name] = depth
            return depth

        for name in by_name:
            visit(name)
        return depths

    @staticmethod
    def _removal_tiers(removals: List[ObservedContainer]) -> List[List[Action]]:
        """Tiers removing dependents before the containers they depend on."""
        by_name = {c.name: c for c in removals}
        dependents: Dict[ContainerName, List[ContainerName]] = defaultdict(list)
        for observed in removals:
            if observed.config is None:
                continue
            for dep in observed.config.dependencies():
                if dep in by_name and dep != observed.name:
                    dependents[dep].append(observed.name)

        depths: Dict[ContainerName, int] = {}
        path: List[ContainerName] = []

        def visit(name: ContainerName) -> int:
            if name in depths:
                return depths[name]
            if name in path:
                raise DependencyCycleError(path[path.index(name):] + [name])
            path.append(name)
            depth = 1 + max((visit(d) for d in dependents[name]), default=-1)
            path.pop()
            depths[name] = depth
            return depth

        tiers: Dict[int, List[Action]] = defaultdict(list)
        for observed in removals:
            tiers[visit(observed.name)].append(RemoveContainer(observed))
        return [tiers[depth] for depth in sorted(tiers)]


def plan(
    namespace: str,
    expected: Sequence[ContainerSpec],
    actual: Sequence[ObservedContainer],
    prefetch: bool = False,
) -> ExecutionPlan:
    """Shortcut for ``Diff(namespace, prefetch).diff(expected, actual)``."""
    return Diff(namespace, prefetch).diff(expected, actual)
