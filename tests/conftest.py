"""Shared fixtures."""

import itertools
import threading
from typing import Dict, List

import pytest

from dockhand.models.container import ContainerName, ContainerSpec, ObservedContainer
from dockhand.providers.base import RuntimeClient


class FakeRuntime(RuntimeClient):
    """In-memory runtime recording every call."""

    def __init__(self):
        self.containers: Dict[str, ObservedContainer] = {}
        self.images = set()
        self.stale_images: List[str] = []
        self.fail_on: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self._pulled: List[str] = []
        self._removed: List[str] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, spec: ContainerSpec, running: bool = True) -> ObservedContainer:
        """Seed a container as if a previous run created it."""
        container_id = f"{next(self._ids):064x}"
        observed = ObservedContainer(
            id=container_id,
            name=spec.name,
            running=running,
            status="running" if running else "exited",
            config=spec.model_copy(update={"id": None}),
        )
        self.containers[container_id] = observed
        return observed

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def _maybe_fail(self, key: str):
        if key in self.fail_on:
            raise self.fail_on[key]

    def get_containers(self, namespace=""):
        return [
            c for c in self.containers.values()
            if not namespace or c.name.namespace == namespace
        ]

    def fetch_image(self, image):
        self._record("fetch", image)
        self._maybe_fail(image)
        with self._lock:
            if image in self.images:
                return False
            self.images.add(image)
            self._pulled.append(image)
        return True

    def pull_all(self, manifest):
        for image in manifest.images():
            self._record("pull", image)
            self._maybe_fail(image)
            with self._lock:
                self.images.add(image)
                self._pulled.append(image)

    def clean(self, manifest):
        self._record("clean", manifest.namespace)
        self._maybe_fail("clean")
        self._removed.extend(self.stale_images)

    def attach_to_containers(self, specs):
        self._record("attach", [str(spec.name) for spec in specs])
        self._maybe_fail("attach")

    def get_pulled_images(self):
        with self._lock:
            return list(self._pulled)

    def get_removed_images(self):
        return list(self._removed)

    def create_and_start(self, spec):
        self._record("create", str(spec.name))
        self._maybe_fail(str(spec.name))
        with self._lock:
            observed = self.add(spec, running=spec.is_running())
        return observed.id

    def stop_and_remove(self, container_id, grace):
        name = str(self.containers[container_id].name)
        self._record("remove", name)
        self._maybe_fail(f"remove:{name}")
        with self._lock:
            del self.containers[container_id]

    def start(self, container_id):
        observed = self.containers[container_id]
        self._record("start", str(observed.name))
        self.containers[container_id] = observed.model_copy(update={"running": True, "status": "running"})

    def stop(self, container_id, grace):
        observed = self.containers[container_id]
        self._record("stop", str(observed.name))
        self.containers[container_id] = observed.model_copy(update={"running": False, "status": "exited"})


@pytest.fixture
def runtime():
    """Empty in-memory runtime."""
    return FakeRuntime()


@pytest.fixture
def make_spec():
    """Factory for container specs in the ``app`` namespace."""
    def _make(name, image="x:1", namespace="app", **kwargs):
        return ContainerSpec(name=ContainerName(namespace=namespace, name=name), image=image, **kwargs)
    return _make


@pytest.fixture
def make_observed():
    """Factory for observed containers running a given spec."""
    def _make(spec, container_id=None, running=True, config="same"):
        return ObservedContainer(
            id=container_id or f"id-{spec.name.name}",
            name=spec.name,
            running=running,
            status="running" if running else "exited",
            config=spec if config == "same" else config,
        )
    return _make
