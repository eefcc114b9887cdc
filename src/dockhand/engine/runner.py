"""Runners executing an execution plan."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from dockhand.engine.actions import Action, ActionResult, CreateContainer, RemoveContainer
from dockhand.engine.diff import ExecutionPlan
from dockhand.errors import ActionError
from dockhand.models.container import ContainerRef
from dockhand.providers.base import RuntimeClient
from dockhand.utils.waitgroup import ErrorWaitGroup


logger = logging.getLogger(__name__)


class Runner(ABC):
    """Executes plans and keeps track of what they changed."""

    def __init__(self):
        self.result = ActionResult()

    @property
    def created(self) -> List[ContainerRef]:
        return list(self.result.created)

    @property
    def removed(self) -> List[ContainerRef]:
        return list(self.result.removed)

    @property
    def pulled(self) -> List[str]:
        return list(self.result.pulled)

    @abstractmethod
    def run(self, plan: ExecutionPlan) -> None:
        """Execute ``plan``; raises on the first failure."""
        pass


class DryRunner(Runner):
    """Describes what a plan would do without touching the runtime."""

    def __init__(self):
        super().__init__()
        self.descriptions: List[str] = []

    def run(self, plan: ExecutionPlan) -> None:
        for action in plan:
            if not action.mutating:
                continue
            description = action.describe()
            logger.info(f"[dry run] {description}")
            self.descriptions.append(description)

            if isinstance(action, CreateContainer):
                self.result.created.append(ContainerRef(name=str(action.container.name)))
            elif isinstance(action, RemoveContainer):
                self.result.removed.append(
                    ContainerRef(id=action.container.id, name=str(action.container.name))
                )


class ClientRunner(Runner):
    """Applies a plan against a runtime client, one tier at a time.

    Every action of a tier runs on its own worker thread and reports to a
    wait group sized to the tier. The runner waits for the whole tier before
    moving on; the first error stops later tiers from being dispatched, but
    siblings already running are left to finish.
    """

    def __init__(self, client: RuntimeClient, wait: float = 1.0, tier_timeout: Optional[float] = None):
        super().__init__()
        self.client = client
        self.wait = wait
        self.tier_timeout = tier_timeout

    def run(self, plan: ExecutionPlan) -> None:
        total = len(plan.tiers)
        for index, tier in enumerate(plan.tiers, 1):
            actions = [action for action in tier if action.mutating]
            if not actions:
                continue
            logger.debug(f"Running tier {index}/{total} with {len(actions)} action(s)")
            self._run_tier(actions)

    def _run_tier(self, actions: List[Action]) -> None:
        # One slot per worker, merged after the barrier
        slots: List[Optional[ActionResult]] = [None] * len(actions)
        group = ErrorWaitGroup(len(actions))

        for slot, action in enumerate(actions):
            worker = threading.Thread(
                target=self._work,
                args=(action, slot, slots, group),
                name=f"dockhand-{action.kind}-{slot}",
                daemon=True,
            )
            worker.start()

        if self.tier_timeout is not None:
            err = group.wait_for(self.tier_timeout)
        else:
            err = group.wait()

        for result in slots:
            if result is not None:
                self.result.merge(result)

        if err is not None:
            if isinstance(err, ActionError):
                raise err from err.cause
            raise err

    def _work(
        self,
        action: Action,
        slot: int,
        slots: List[Optional[ActionResult]],
        group: ErrorWaitGroup,
    ) -> None:
        try:
            slots[slot] = action.apply(self.client, self.wait)
        except Exception as e:
            logger.error(f"{action.describe()} failed: {e}")
            group.done(ActionError(action, e))
            return
        group.done()
