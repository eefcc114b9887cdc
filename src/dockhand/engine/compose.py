"""Orchestrator facade: the run, recover, pull and clean verbs."""

import logging
from typing import List, Optional, Sequence

from dockhand.engine.actions import PullImage
from dockhand.engine.diff import Diff, ExecutionPlan
from dockhand.engine.runner import ClientRunner, DryRunner, Runner
from dockhand.errors import ActionError, ComposeError, DockhandError, PlanError, WaitTimeoutError
from dockhand.models.config import ComposeConfig
from dockhand.models.container import ContainerSpec, ObservedContainer, assign_identity
from dockhand.models.manifest import Manifest
from dockhand.models.report import RunReport
from dockhand.providers.base import RuntimeClient


logger = logging.getLogger(__name__)


class Compose:
    """Converges runtime containers to a manifest.

    No state is kept between runs: every verb re-reads the containers from
    the runtime, so re-running after a partial failure is always safe.
    """

    def __init__(
        self,
        manifest: Optional[Manifest],
        client: RuntimeClient,
        config: Optional[ComposeConfig] = None,
    ):
        """Initialize compose."""
        self.manifest = manifest
        self.client = client
        self.config = config or ComposeConfig()
        self.plan: Optional[ExecutionPlan] = None
        self.runner: Optional[Runner] = None

    def execute(self) -> None:
        """Run the verb selected by the configuration."""
        if self.config.recover:
            self.recover()
        else:
            self.run()

    def run(self) -> None:
        """Converge the manifest's namespace to the manifest."""
        manifest = self._require_manifest()

        if self.config.pull:
            if self.config.dry_run:
                logger.info("[dry run] Pull all images of the manifest")
            else:
                self.pull()

        # Every namespace is listed so references to other namespaces resolve;
        # the planner only touches containers of the manifest's namespace
        actual = self._get_containers("")

        # With remove, pretend nothing is expected
        expected: List[ContainerSpec] = []
        if not self.config.remove:
            expected = manifest.specs()
        expected = assign_identity(expected, actual)

        self._converge(manifest.namespace, expected, actual)
        self._log_running(expected)

        if self.config.attach and expected:
            if self.config.dry_run:
                logger.info("[dry run] Attach to containers")
                return
            logger.debug("Attaching to containers")
            try:
                self.client.attach_to_containers(expected)
            except DockhandError as e:
                raise ComposeError("attach", e, f"Cannot attach to containers: {e}") from e

    def recover(self) -> None:
        """Re-apply the recorded desired state of every managed container."""
        actual = [c for c in self._get_containers("") if c.config is not None]

        expected = []
        for observed in actual:
            expected.append(observed.config.model_copy(
                update={"name": observed.name, "id": observed.id}
            ))

        self._converge("", expected, actual)
        self._log_running(expected)

    def pull(self) -> None:
        """Pull every image of the manifest."""
        manifest = self._require_manifest()
        try:
            self.client.pull_all(manifest)
        except DockhandError as e:
            raise ComposeError("pull", e, f"Failed to pull all images: {e}") from e

    def clean(self) -> None:
        """Remove old tags of the manifest's images."""
        manifest = self._require_manifest()
        try:
            self.client.clean(manifest)
        except DockhandError as e:
            raise ComposeError("clean", e, f"Failed to clean old images: {e}") from e

    def report(self) -> RunReport:
        """Summary of what the last verb changed."""
        created = self.runner.created if self.runner else []
        removed = self.runner.removed if self.runner else []
        if self.config.dry_run:
            pulled: List[str] = []
            cleaned: List[str] = []
        else:
            pulled = self.client.get_pulled_images()
            cleaned = self.client.get_removed_images()
        return RunReport.build(removed=removed, created=created, pulled=pulled, cleaned=cleaned)

    def _converge(
        self,
        namespace: str,
        expected: Sequence[ContainerSpec],
        actual: Sequence[ObservedContainer],
    ) -> None:
        try:
            plan = Diff(namespace, prefetch=True).diff(expected, actual)
        except PlanError as e:
            raise ComposeError("plan", e, f"Diff of configuration failed: {e}") from e
        self.plan = plan

        if self.config.dry_run:
            runner: Runner = DryRunner()
        else:
            runner = ClientRunner(self.client, wait=self.config.wait, tier_timeout=self.config.tier_timeout)
        self.runner = runner

        try:
            runner.run(plan)
        except ActionError as e:
            phase = "fetch" if isinstance(e.action, PullImage) else "execute"
            raise ComposeError(phase, e, f"Execution failed: {e}") from e
        except WaitTimeoutError as e:
            raise ComposeError("execute", e, f"Execution failed: {e}") from e

    def _get_containers(self, namespace: str) -> List[ObservedContainer]:
        try:
            return self.client.get_containers(namespace)
        except DockhandError as e:
            raise ComposeError("inspect", e, f"Failed to list containers: {e}") from e

    def _require_manifest(self) -> Manifest:
        if self.manifest is None:
            raise ComposeError("plan", message="A manifest is required for this command")
        return self.manifest

    @staticmethod
    def _log_running(expected: Sequence[ContainerSpec]) -> None:
        names = [str(spec.name) for spec in expected if spec.is_running()]
        if names:
            logger.info(f"OK, containers are running: {', '.join(names)}")
        else:
            logger.info("Nothing is running")
