"""Manifest loading."""

import logging
import re
from pathlib import Path
from typing import Any, Dict

from ruamel.yaml import YAML

from dockhand.models.container import ContainerName, ContainerSpec
from dockhand.models.manifest import Manifest


logger = logging.getLogger(__name__)


def default_namespace(path: Path) -> str:
    """Namespace derived from the directory holding the manifest."""
    name = re.sub(r"[^a-zA-Z0-9_-]", "", path.resolve().parent.name)
    return name or "default"


class ManifestLoader:
    """Reads a YAML manifest into a :class:`Manifest`.

    The file has an optional ``namespace`` key and a ``containers`` mapping
    of container name to container settings::

        namespace: shop
        containers:
          db:
            image: postgres:16
          web:
            image: shop/web:1.4
            links: [db]
    """

    def __init__(self, path: Path):
        """Initialize manifest loader."""
        self.path = Path(path)
        self.yaml = YAML()
        self.yaml.preserve_quotes = True

    def load(self) -> Manifest:
        """Load and validate the manifest."""
        if not self.path.exists():
            raise FileNotFoundError(f"Manifest not found: {self.path}")

        logger.info(f"Loading manifest from {self.path}")
        data = self._read_yaml(self.path) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Manifest {self.path} must be a mapping")

        namespace = str(data.get("namespace") or default_namespace(self.path))
        containers: Dict[str, ContainerSpec] = {}
        for name, settings in (data.get("containers") or {}).items():
            settings = dict(settings or {})
            settings.pop("name", None)
            containers[str(name)] = ContainerSpec(
                name=ContainerName(namespace=namespace, name=str(name)),
                **settings,
            )

        manifest = Manifest(namespace=namespace, containers=containers)
        logger.debug(f"Loaded {len(containers)} container(s) for namespace {namespace}")
        return manifest

    def _read_yaml(self, file_path: Path) -> Any:
        """Read and parse YAML file."""
        return self.yaml.load(file_path.read_text())
