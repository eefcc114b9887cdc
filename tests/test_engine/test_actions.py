"""Tests for plan actions."""

from unittest.mock import Mock

import pytest

from dockhand.engine.actions import (
    ActionResult,
    CreateContainer,
    EnsureState,
    Noop,
    PullImage,
    RemoveContainer,
    truncate_id,
    walk_actions,
)
from dockhand.models.container import ContainerRef


@pytest.fixture
def client():
    """Mock runtime client."""
    client = Mock()
    client.fetch_image.return_value = False
    client.create_and_start.return_value = "f" * 64
    return client


class TestCreateContainer:
    """Test the create action."""

    def test_apply_pulls_if_missing_then_creates(self, client, make_spec):
        """Test create fetches the image before creating the container."""
        client.fetch_image.return_value = True
        spec = make_spec("web", image="x:1")

        result = CreateContainer(spec).apply(client, wait=2)

        client.fetch_image.assert_called_once_with("x:1")
        client.create_and_start.assert_called_once_with(spec)
        assert result.pulled == ["x:1"]
        assert result.created == [ContainerRef(id="f" * 64, name="app.web")]
        assert result.removed == []

    def test_apply_with_present_image(self, client, make_spec):
        """Test nothing is reported as pulled when the image exists."""
        result = CreateContainer(make_spec("web")).apply(client, wait=2)
        assert result.pulled == []

    def test_failure_propagates(self, client, make_spec):
        """Test runtime errors are not swallowed."""
        client.create_and_start.side_effect = RuntimeError("name in use")

        with pytest.raises(RuntimeError):
            CreateContainer(make_spec("web")).apply(client, wait=2)

    def test_describe(self, make_spec):
        assert CreateContainer(make_spec("web", image="x:1")).describe() == "Create container app.web from x:1"


class TestRemoveContainer:
    """Test the remove action."""

    def test_apply_passes_grace(self, client, make_spec, make_observed):
        """Test remove stops with the configured grace period."""
        observed = make_observed(make_spec("web"), "abc")

        result = RemoveContainer(observed).apply(client, wait=7)

        client.stop_and_remove.assert_called_once_with("abc", 7)
        assert result.removed == [ContainerRef(id="abc", name="app.web")]


class TestEnsureState:
    """Test the ensure-state action."""

    def test_start(self, client, make_spec, make_observed):
        """Test a container declared running is started."""
        spec = make_spec("web")
        EnsureState(spec, make_observed(spec, "abc", running=False)).apply(client, wait=1)

        client.start.assert_called_once_with("abc")
        client.stop.assert_not_called()

    def test_stop(self, client, make_spec, make_observed):
        """Test a container declared stopped is stopped."""
        spec = make_spec("web", state="stopped")
        EnsureState(spec, make_observed(spec, "abc")).apply(client, wait=3)

        client.stop.assert_called_once_with("abc", 3)


class TestPullAndNoop:
    """Test pull and no-op actions."""

    def test_pull_reports_pulled_image(self, client):
        client.fetch_image.return_value = True
        assert PullImage("x:1").apply(client, wait=1).pulled == ["x:1"]

    def test_pull_present_image(self, client):
        assert PullImage("x:1").apply(client, wait=1).pulled == []

    def test_noop_touches_nothing(self, client, make_spec):
        """Test noop is not mutating and never calls the client."""
        action = Noop(make_spec("web"))

        assert action.mutating is False
        assert action.apply(client, wait=1) == ActionResult()
        assert client.method_calls == []
        assert action.describe() == "Container app.web is up to date"


def test_merge_results():
    """Test worker results merge in order."""
    total = ActionResult(pulled=["a"])
    total.merge(ActionResult(pulled=["b"], created=[ContainerRef(id="1", name="x")]))

    assert total.pulled == ["a", "b"]
    assert total.created == [ContainerRef(id="1", name="x")]


def test_walk_actions(make_spec):
    actions = [PullImage("x:1"), Noop(make_spec("web"))]
    seen = []
    walk_actions(actions, seen.append)
    assert seen == actions


def test_truncate_id():
    assert truncate_id("0123456789abcdef") == "0123456789ab"
    assert truncate_id("") == ""
