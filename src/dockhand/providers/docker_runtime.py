"""Docker runtime client."""

import logging
import math
import sys
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, TextIO, Tuple

import docker
from docker.errors import DockerException, ImageNotFound, NotFound
from pydantic import ValidationError

from dockhand.errors import RuntimeClientError
from dockhand.models.config import DockerRuntimeConfig
from dockhand.models.container import ContainerName, ContainerSpec, ObservedContainer
from dockhand.models.manifest import Manifest
from dockhand.providers.base import RuntimeClient
from dockhand.utils.waitgroup import ErrorWaitGroup


logger = logging.getLogger(__name__)

# Containers are labeled so they can be re-discovered, together with the
# spec they were created from, on every run.
LABEL_NAMESPACE = "dockhand.namespace"
LABEL_NAME = "dockhand.name"
LABEL_SPEC = "dockhand.spec"


def parse_image_ref(image: str) -> Tuple[str, Optional[str]]:
    """Split ``repo[:tag]`` into repository and tag."""
    if "@" in image:
        repo, digest = image.split("@", 1)
        return repo, digest
    head, sep, tag = image.rpartition(":")
    if sep and "/" not in tag:
        return head, tag
    return image, None


def parse_ports(ports: List[str]) -> Dict[str, Any]:
    """Convert ``[ip:]host:container[/proto]`` entries to docker SDK port bindings."""
    bindings: Dict[str, Any] = {}
    for entry in ports:
        mapping, _, proto = entry.partition("/")
        parts = mapping.split(":")
        container_port = f"{parts[-1]}/{proto or 'tcp'}"
        if len(parts) == 1:
            bindings[container_port] = None
        elif len(parts) == 2:
            bindings[container_port] = int(parts[0]) if parts[0] else None
        else:
            host_port = int(parts[-2]) if parts[-2] else None
            bindings[container_port] = (parts[0], host_port)
    return bindings


def parse_restart(restart: str) -> Dict[str, Any]:
    """Convert ``always`` or ``on-failure:N`` to a docker restart policy."""
    name, _, retries = restart.partition(":")
    policy: Dict[str, Any] = {"Name": name}
    if retries:
        policy["MaximumRetryCount"] = int(retries)
    return policy


def container_kwargs(spec: ContainerSpec) -> Dict[str, Any]:
    """Keyword arguments for ``containers.create`` built from a spec."""
    namespace = spec.name.namespace

    def resolve(ref: str) -> str:
        return str(ContainerName.parse(ref, namespace))

    labels = dict(spec.labels)
    labels.update({
        LABEL_NAMESPACE: namespace,
        LABEL_NAME: spec.name.name,
        LABEL_SPEC: spec.model_dump_json(exclude={"id"}),
    })

    kwargs: Dict[str, Any] = {
        "name": str(spec.name),
        "labels": labels,
        "environment": dict(spec.env),
    }
    if spec.cmd:
        kwargs["command"] = list(spec.cmd)
    if spec.entrypoint:
        kwargs["entrypoint"] = list(spec.entrypoint)
    if spec.volumes:
        kwargs["volumes"] = list(spec.volumes)
    if spec.volumes_from:
        kwargs["volumes_from"] = [resolve(ref) for ref in spec.volumes_from]
    if spec.links:
        links = {}
        for link in spec.links:
            target, _, alias = link.partition(":")
            links[resolve(target)] = alias or ContainerName.parse(target, namespace).name
        kwargs["links"] = links
    if spec.ports:
        kwargs["ports"] = parse_ports(spec.ports)
    if spec.net:
        if spec.net.startswith("container:"):
            kwargs["network_mode"] = f"container:{resolve(spec.net[len('container:'):])}"
        else:
            kwargs["network_mode"] = spec.net
    if spec.restart:
        kwargs["restart_policy"] = parse_restart(spec.restart)
    if spec.user:
        kwargs["user"] = spec.user
    if spec.workdir:
        kwargs["working_dir"] = spec.workdir
    if spec.hostname:
        kwargs["hostname"] = spec.hostname
    return kwargs


@contextmanager
def _docker_errors(what: str):
    try:
        yield
    except DockerException as e:
        logger.error(f"{what} failed: {e}")
        raise RuntimeClientError(f"{what} failed: {e}") from e


class DockerRuntime(RuntimeClient):
    """Runtime client talking to a docker daemon through the docker SDK."""

    def __init__(
        self,
        config: Optional[DockerRuntimeConfig] = None,
        client: Optional[docker.DockerClient] = None,
        output: Optional[TextIO] = None,
    ):
        self.config = config or DockerRuntimeConfig()
        self._client = client
        self.output = output or sys.stdout
        self._lock = threading.Lock()
        self._pulled: List[str] = []
        self._removed: List[str] = []

    @property
    def client(self) -> docker.DockerClient:
        """Docker SDK client, created on first use."""
        if self._client is None:
            with _docker_errors("Connecting to docker"):
                if self.config.base_url:
                    self._client = docker.DockerClient(
                        base_url=self.config.base_url, timeout=self.config.timeout
                    )
                else:
                    self._client = docker.from_env(timeout=self.config.timeout)
        return self._client

    def get_containers(self, namespace: str = "") -> List[ObservedContainer]:
        label = f"{LABEL_NAMESPACE}={namespace}" if namespace else LABEL_NAMESPACE
        with _docker_errors("Listing containers"):
            containers = self.client.containers.list(all=True, filters={"label": [label]})

        observed = []
        for container in containers:
            labels = container.labels or {}
            name = ContainerName(
                namespace=labels.get(LABEL_NAMESPACE, ""),
                name=labels.get(LABEL_NAME) or container.name.rpartition(".")[2],
            )
            config = None
            raw = labels.get(LABEL_SPEC)
            if raw:
                try:
                    config = ContainerSpec.model_validate_json(raw)
                except ValidationError as e:
                    logger.warning(f"Ignoring unreadable spec label of {name}: {e}")
            state = container.attrs.get("State")
            exit_code = state.get("ExitCode") if isinstance(state, dict) else None
            observed.append(ObservedContainer(
                id=container.id,
                name=name,
                running=container.status == "running",
                status=container.status,
                exit_code=exit_code,
                config=config,
            ))
        logger.debug(f"Found {len(observed)} container(s) in namespace {namespace or '*'}")
        return observed

    def fetch_image(self, image: str) -> bool:
        with _docker_errors(f"Inspecting image {image}"):
            try:
                self.client.images.get(image)
                return False
            except ImageNotFound:
                pass
        self._pull(image)
        return True

    def _pull(self, image: str) -> None:
        repo, tag = parse_image_ref(image)
        logger.info(f"Pulling image {image}")
        with _docker_errors(f"Pulling image {image}"):
            self.client.images.pull(repo, tag=tag, auth_config=self.config.auth.to_docker())
        with self._lock:
            self._pulled.append(image)

    def pull_all(self, manifest: Manifest) -> None:
        for image in manifest.images():
            self._pull(image)

    def clean(self, manifest: Manifest) -> None:
        keep = self.config.keep_images
        wanted = set(manifest.images())
        with _docker_errors("Listing containers"):
            in_use = {c.attrs.get("Image") for c in self.client.containers.list(all=True)}

        repos = []
        for image in manifest.images():
            repo, _ = parse_image_ref(image)
            if repo not in repos:
                repos.append(repo)

        for repo in repos:
            with _docker_errors(f"Listing images of {repo}"):
                images = self.client.images.list(name=repo)
            images.sort(key=lambda i: i.attrs.get("Created", ""), reverse=True)
            for image in images[keep:]:
                if image.id in in_use:
                    logger.debug(f"Keeping image {image.id[:19]}, used by a container")
                    continue
                for tag in image.tags:
                    if tag in wanted or parse_image_ref(tag)[0] != repo:
                        continue
                    logger.info(f"Removing image {tag}")
                    with _docker_errors(f"Removing image {tag}"):
                        self.client.images.remove(tag)
                    with self._lock:
                        self._removed.append(tag)

    def attach_to_containers(self, specs: List[ContainerSpec]) -> None:
        targets = [spec for spec in specs if spec.is_running()]
        group = ErrorWaitGroup(len(targets))
        for spec in targets:
            threading.Thread(
                target=self._follow, args=(spec, group), name=f"attach-{spec.name}", daemon=True
            ).start()
        err = group.wait()
        if err is not None:
            raise RuntimeClientError(f"Attach failed: {err}") from err

    def _follow(self, spec: ContainerSpec, group: ErrorWaitGroup) -> None:
        try:
            container = self.client.containers.get(str(spec.name))
            for line in container.logs(stream=True, follow=True):
                text = line.decode(errors="replace").rstrip("\n")
                with self._lock:
                    print(f"{spec.name.name} | {text}", file=self.output, flush=True)
        except Exception as e:
            logger.error(f"Attaching to {spec.name} failed: {e}")
            group.done(e)
            return
        group.done()

    def get_pulled_images(self) -> List[str]:
        with self._lock:
            return list(self._pulled)

    def get_removed_images(self) -> List[str]:
        with self._lock:
            return list(self._removed)

    def create_and_start(self, spec: ContainerSpec) -> str:
        with _docker_errors(f"Creating container {spec.name}"):
            container = self.client.containers.create(spec.image, **container_kwargs(spec))
            if spec.is_running():
                container.start()
        return container.id

    def stop_and_remove(self, container_id: str, grace: float) -> None:
        with _docker_errors(f"Removing container {container_id[:12]}"):
            try:
                container = self.client.containers.get(container_id)
            except NotFound:
                logger.debug(f"Container {container_id[:12]} already gone")
                return
            if container.status == "running":
                container.stop(timeout=math.ceil(grace))
            container.remove(force=True)

    def start(self, container_id: str) -> None:
        with _docker_errors(f"Starting container {container_id[:12]}"):
            self.client.containers.get(container_id).start()

    def stop(self, container_id: str, grace: float) -> None:
        with _docker_errors(f"Stopping container {container_id[:12]}"):
            self.client.containers.get(container_id).stop(timeout=math.ceil(grace))
