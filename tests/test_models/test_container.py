"""Tests for container models."""

import hashlib

import pytest
from pydantic import ValidationError

from dockhand.models.container import (
    ContainerName,
    ContainerSpec,
    ObservedContainer,
    assign_identity,
    matches_kind,
)


class TestContainerName:
    """Test ContainerName model."""

    def test_parse_local_name(self):
        name = ContainerName.parse("web", "shop")
        assert name.namespace == "shop"
        assert name.name == "web"
        assert str(name) == "shop.web"

    def test_parse_qualified_name(self):
        name = ContainerName.parse("infra.db", "shop")
        assert name == ContainerName(namespace="infra", name="db")

    def test_str_without_namespace(self):
        assert str(ContainerName(name="web")) == "web"

    def test_invalid_name(self):
        with pytest.raises(ValidationError):
            ContainerName(namespace="shop", name="-web")

    def test_hashable(self):
        names = {ContainerName.parse("web", "a"), ContainerName.parse("a.web")}
        assert len(names) == 1


class TestContainerSpec:
    """Test ContainerSpec model."""

    def test_minimal_container_spec(self):
        spec = ContainerSpec(name="shop.web", image="nginx:1.25")

        assert spec.name == ContainerName(namespace="shop", name="web")
        assert spec.state == "running"
        assert spec.env == {}
        assert spec.links == []
        assert spec.id is None
        assert spec.is_running()

    def test_coerces_yaml_scalars(self):
        spec = ContainerSpec(
            name="shop.web",
            image="nginx",
            env={"PORT": 8080, "DEBUG": True},
            ports=80,
            cmd="nginx -g 'daemon off;'",
        )

        assert spec.env == {"PORT": "8080", "DEBUG": "True"}
        assert spec.ports == ["80"]
        assert spec.cmd == ["nginx", "-g", "daemon off;"]

    def test_invalid_state_value(self):
        with pytest.raises(ValidationError) as exc_info:
            ContainerSpec(name="shop.web", image="nginx", state="paused")

        assert "state" in str(exc_info.value)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ContainerSpec(name="shop.web", image="nginx", replicas=3)

    def test_empty_image_rejected(self):
        with pytest.raises(ValidationError):
            ContainerSpec(name="shop.web", image="  ")

    def test_immutable(self):
        spec = ContainerSpec(name="shop.web", image="nginx")
        with pytest.raises(ValidationError):
            spec.image = "httpd"

    def test_dependencies(self):
        spec = ContainerSpec(
            name="shop.web",
            image="nginx",
            links=["db:database", "infra.cache"],
            volumes_from=["data"],
            net="container:proxy",
            wait_for=["migrate", "db"],
        )

        assert spec.hard_dependencies() == [
            ContainerName(namespace="shop", name="db"),
            ContainerName(namespace="infra", name="cache"),
            ContainerName(namespace="shop", name="data"),
            ContainerName(namespace="shop", name="proxy"),
        ]
        assert spec.dependencies()[-1] == ContainerName(namespace="shop", name="migrate")
        assert len(spec.dependencies()) == 5

    def test_host_network_is_not_a_dependency(self):
        spec = ContainerSpec(name="shop.web", image="nginx", net="host")
        assert spec.dependencies() == []


class TestSignature:
    """Test the kind signature."""

    def test_stable_for_equal_specs(self):
        a = ContainerSpec(name="shop.web", image="nginx", env={"A": "1", "B": "2"})
        b = ContainerSpec(name="shop.web", image="nginx", env={"B": "2", "A": "1"})
        assert a.signature() == b.signature()

    def test_known_value(self):
        spec = ContainerSpec(name="shop.web", image="x:1")
        # Empty fields are dropped before hashing
        assert spec.signature() == hashlib.sha256(b'{"image":"x:1"}').hexdigest()

    def test_image_change_is_drift(self):
        a = ContainerSpec(name="shop.web", image="x:1")
        b = ContainerSpec(name="shop.web", image="x:2")
        assert a.signature() != b.signature()

    def test_ignores_state_id_and_wait_for(self):
        a = ContainerSpec(name="shop.web", image="x:1")
        b = ContainerSpec(name="shop.web", image="x:1", state="stopped", id="abc", wait_for=["db"])
        assert a.signature() == b.signature()

    def test_empty_values_match_missing_ones(self):
        a = ContainerSpec(name="shop.web", image="x:1")
        b = ContainerSpec(name="shop.web", image="x:1", cmd=[], env={}, net="", volumes=[])
        assert a.signature() == b.signature()

    def test_mount_order_does_not_matter(self):
        a = ContainerSpec(name="shop.web", image="x:1", volumes=["/a:/a", "/b:/b"])
        b = ContainerSpec(name="shop.web", image="x:1", volumes=["/b:/b", "/a:/a"])
        assert a.signature() == b.signature()

    def test_command_order_matters(self):
        a = ContainerSpec(name="shop.web", image="x:1", cmd=["a", "b"])
        b = ContainerSpec(name="shop.web", image="x:1", cmd=["b", "a"])
        assert a.signature() != b.signature()

    def test_survives_label_round_trip(self):
        spec = ContainerSpec(name="shop.web", image="x:1", env={"A": "1"}, links=["db"])
        restored = ContainerSpec.model_validate_json(spec.model_dump_json())
        assert restored.signature() == spec.signature()
        assert restored.name == spec.name


class TestMatching:
    """Test matches_kind and assign_identity."""

    def test_matches_same_kind(self, make_spec, make_observed):
        spec = make_spec("web")
        assert matches_kind(spec, make_observed(spec))

    def test_different_name(self, make_spec, make_observed):
        assert not matches_kind(make_spec("web"), make_observed(make_spec("api")))

    def test_different_config(self, make_spec, make_observed):
        observed = make_observed(make_spec("web", image="x:1"))
        assert not matches_kind(make_spec("web", image="x:2"), observed)

    def test_foreign_container_never_matches(self, make_spec, make_observed):
        spec = make_spec("web")
        assert not matches_kind(spec, make_observed(spec, config=None))

    def test_assign_identity(self, make_spec, make_observed):
        web = make_spec("web")
        db = make_spec("db", image="postgres:16")
        actual = [make_observed(web, "id-web"), make_observed(make_spec("db", image="postgres:15"))]

        result = assign_identity([web, db], actual)

        assert result[0].id == "id-web"
        assert result[1].id is None
        # Inputs are left untouched
        assert web.id is None

    def test_observed_name_from_string(self):
        observed = ObservedContainer(id="abc", name="shop.web")
        assert observed.name == ContainerName(namespace="shop", name="web")
        assert observed.config is None
