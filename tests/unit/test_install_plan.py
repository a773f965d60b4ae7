"""Unit tests for install plan discovery and approval."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from olminstall.installer.configuration import Configuration
from olminstall.installer.install_plan import InstallPlanApprover
from olminstall.kubernetes.polling import deadline_after
from olminstall.observability.metrics import MetricsCollector
from olminstall.olm import (
    INSTALL_PLAN,
    SUBSCRIPTION,
    NotFoundError,
    NotReadyError,
    ObjectRef,
    ResourceVersionConflictError,
    Subscription,
)

from tests.fakes import OPERATOR_NAMESPACE, FakeResourceStore


PLAN_NAME = "install-abcde"


def make_subscription(ref: ObjectRef | None = None) -> Subscription:
    return Subscription(
        name="etcdoperator.v0.9.4",
        namespace=OPERATOR_NAMESPACE,
        package="etcd",
        channel="alpha",
        starting_csv="etcdoperator.v0.9.4",
        catalog_source="etcd-catalog",
        catalog_source_namespace=OPERATOR_NAMESPACE,
        install_plan_ref=ref,
    )


def install_plan_object(name: str = PLAN_NAME) -> dict[str, Any]:
    return {
        "metadata": {"name": name, "namespace": OPERATOR_NAMESPACE},
        "spec": {"approved": False, "approval": "Manual"},
    }


def reference_plan_after(reads: int) -> Any:
    """on_get hook that sets status.installPlanRef from the given read on."""
    seen = {"reads": 0}

    def _hook(_store: FakeResourceStore, obj: dict[str, Any]) -> None:
        seen["reads"] += 1
        if seen["reads"] >= reads:
            obj["status"] = {
                "installPlanRef": {"name": PLAN_NAME, "namespace": OPERATOR_NAMESPACE},
            }

    return _hook


@pytest.fixture
def approver(cfg: Configuration) -> InstallPlanApprover:
    return InstallPlanApprover(cfg)


@pytest.fixture
def subscription(store: FakeResourceStore) -> Subscription:
    sub = make_subscription()
    store.put(SUBSCRIPTION, sub.to_kubernetes_object())
    return sub


class TestWaitForInstallPlan:
    """Tests for waiting on the subscription's install plan reference."""

    @pytest.mark.asyncio
    async def test_reference_appears(
        self,
        store: FakeResourceStore,
        approver: InstallPlanApprover,
        subscription: Subscription,
    ) -> None:
        """Polling stops once the reference is set."""
        store.on_get[("subscriptions", OPERATOR_NAMESPACE, subscription.name)] = (
            reference_plan_after(3)
        )

        latest = await approver.wait_for_install_plan(subscription, deadline_after(5.0))

        assert latest.install_plan_ref == ObjectRef(name=PLAN_NAME, namespace=OPERATOR_NAMESPACE)
        assert store.count("get", SUBSCRIPTION) == 3

    @pytest.mark.asyncio
    async def test_timeout(self, approver: InstallPlanApprover, subscription: Subscription) -> None:
        """A reference that never appears times out."""
        with pytest.raises(NotReadyError) as exc_info:
            await approver.wait_for_install_plan(subscription, deadline_after(0.05))

        assert str(exc_info.value) == (
            f"install plan is not available for the subscription {subscription.name}"
        )
        assert exc_info.value.details["subscription"] == subscription.name

    @pytest.mark.asyncio
    async def test_expired_deadline(
        self,
        store: FakeResourceStore,
        approver: InstallPlanApprover,
        subscription: Subscription,
    ) -> None:
        """An already expired deadline fails without reading."""
        deadline = asyncio.get_running_loop().time() - 1

        with pytest.raises(NotReadyError):
            await approver.wait_for_install_plan(subscription, deadline)

        assert store.count("get") == 0

    @pytest.mark.asyncio
    async def test_missing_subscription(self, approver: InstallPlanApprover) -> None:
        """Read errors abort the wait."""
        with pytest.raises(NotFoundError):
            await approver.wait_for_install_plan(make_subscription(), deadline_after(1.0))


class TestApproveInstallPlan:
    """Tests for approving the referenced install plan."""

    @pytest.fixture
    def referenced(self, store: FakeResourceStore) -> Subscription:
        store.put(INSTALL_PLAN, install_plan_object())
        return make_subscription(ObjectRef(name=PLAN_NAME, namespace=OPERATOR_NAMESPACE))

    @pytest.mark.asyncio
    async def test_approve(
        self,
        store: FakeResourceStore,
        approver: InstallPlanApprover,
        referenced: Subscription,
    ) -> None:
        """The plan is approved with a single update."""
        plan = await approver.approve(referenced)

        assert plan.approved is True
        assert plan.name == PLAN_NAME
        stored = store.stored(INSTALL_PLAN, OPERATOR_NAMESPACE, PLAN_NAME)
        assert stored is not None
        assert stored["spec"]["approved"] is True
        assert stored["spec"]["approval"] == "Manual"
        assert store.count("update", INSTALL_PLAN) == 1

    @pytest.mark.asyncio
    async def test_retries_version_conflicts(
        self,
        store: FakeResourceStore,
        cfg: Configuration,
        referenced: Subscription,
    ) -> None:
        """Concurrent writers cause re-reads until the update lands."""
        registry = CollectorRegistry()
        cfg.metrics = MetricsCollector(namespace="test_approve", registry=registry)
        store.stale_updates = 2

        plan = await InstallPlanApprover(cfg).approve(referenced)

        assert plan.approved is True
        assert store.count("get", INSTALL_PLAN) == 3
        assert store.count("update", INSTALL_PLAN) == 3
        retries = registry.get_sample_value("test_approve_install_plan_approval_retries_total")
        assert retries == 2.0

    @pytest.mark.asyncio
    async def test_retry_budget_exhausted(
        self,
        store: FakeResourceStore,
        approver: InstallPlanApprover,
        referenced: Subscription,
    ) -> None:
        """Persistent conflicts surface after the configured attempts."""
        store.stale_updates = 100

        with pytest.raises(ResourceVersionConflictError):
            await approver.approve(referenced)

        assert store.count("update", INSTALL_PLAN) == 5
        stored = store.stored(INSTALL_PLAN, OPERATOR_NAMESPACE, PLAN_NAME)
        assert stored is not None
        assert stored["spec"]["approved"] is False

    @pytest.mark.asyncio
    async def test_missing_plan_is_not_retried(
        self, store: FakeResourceStore, approver: InstallPlanApprover
    ) -> None:
        """A plan that does not exist fails on the first read."""
        sub = make_subscription(ObjectRef(name="missing", namespace=OPERATOR_NAMESPACE))

        with pytest.raises(NotFoundError):
            await approver.approve(sub)

        assert store.count("get", INSTALL_PLAN) == 1
        assert store.count("update") == 0

    @pytest.mark.asyncio
    async def test_without_reference(
        self, store: FakeResourceStore, approver: InstallPlanApprover
    ) -> None:
        """A subscription without a plan reference cannot be approved."""
        with pytest.raises(NotReadyError, match="does not reference an install plan"):
            await approver.approve(make_subscription())

        assert store.calls == []
