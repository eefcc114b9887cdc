"""Exception hierarchy shared by the planner, runners and orchestrator."""

from typing import Optional


class DockhandError(Exception):
    """Base class for all dockhand errors."""


class PlanError(DockhandError):
    """Planning failed; nothing has been mutated."""


class DuplicateNameError(PlanError):
    """Two expected containers share a name."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Duplicate container name in manifest: {name}")


class MissingDependencyError(PlanError):
    """A container refers to a container that is neither expected nor running."""

    def __init__(self, container, dependency):
        self.container = container
        self.dependency = dependency
        super().__init__(
            f"Container {container} depends on {dependency}, which is not defined"
        )


class DependencyCycleError(PlanError):
    """Expected containers depend on each other in a loop."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        chain = " -> ".join(str(name) for name in self.cycle)
        super().__init__(f"Dependency cycle detected: {chain}")


class WaitTimeoutError(DockhandError):
    """A wait group deadline elapsed before every outcome was reported."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Timeout {timeout}s waiting for actions to complete")


class ActionError(DockhandError):
    """An action failed at the runtime layer."""

    def __init__(self, action, cause: BaseException):
        self.action = action
        self.cause = cause
        super().__init__(f"{action.describe()} failed: {cause}")


class RuntimeClientError(DockhandError):
    """The container runtime rejected or failed a request."""


class ComposeError(DockhandError):
    """Terminal error of an orchestrator verb, tagged with the failed phase."""

    def __init__(self, phase: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.phase = phase
        self.cause = cause
        super().__init__(message or f"{phase.capitalize()} failed: {cause}")
