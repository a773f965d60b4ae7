"""Install plan discovery and approval.

Subscriptions use manual approval, so OLM generates an install plan and then
waits. The approver waits for the plan to be referenced from the
subscription status and flips ``spec.approved``.
"""

from __future__ import annotations

from typing import Any

from olminstall.installer.configuration import Configuration
from olminstall.kubernetes.polling import poll_until
from olminstall.kubernetes.retry import update_with_retry
from olminstall.observability.logging import get_logger
from olminstall.olm.errors import NotReadyError
from olminstall.olm.models import INSTALL_PLAN, SUBSCRIPTION, InstallPlan, Subscription


log = get_logger(__name__)


class InstallPlanApprover:
    """Waits for and approves the install plan generated for a subscription."""

    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg

    async def wait_for_install_plan(
        self,
        subscription: Subscription,
        deadline: float | None,
    ) -> Subscription:
        """Poll the subscription until its status references an install plan.

        Returns:
            The refreshed subscription, with ``install_plan_ref`` set.

        Raises:
            NotReadyError: The deadline passed first.
            APIError: Reading the subscription failed.
        """
        latest = subscription

        async def _has_install_plan() -> bool:
            nonlocal latest
            obj = await self.cfg.store.get(SUBSCRIPTION, subscription.namespace, subscription.name)
            latest = Subscription.from_kubernetes_object(obj)
            return latest.install_plan_ref is not None

        try:
            await poll_until(
                _has_install_plan,
                interval=self.cfg.settings.poll_interval_seconds,
                deadline=deadline,
                description=f"install plan of subscription {subscription.name}",
            )
        except NotReadyError as e:
            msg = f"install plan is not available for the subscription {subscription.name}"
            raise NotReadyError(
                msg,
                details={"namespace": subscription.namespace, "subscription": subscription.name},
            ) from e

        log.info(
            "install_plan_found",
            subscription=latest.name,
            install_plan=latest.install_plan_ref.name,
        )
        return latest

    async def approve(self, subscription: Subscription) -> InstallPlan:
        """Approve the install plan referenced by ``subscription``.

        Retries the read-modify-write cycle when another writer updated the
        plan in between; gives up after the configured number of attempts.
        """
        ref = subscription.install_plan_ref
        if ref is None:
            msg = f"subscription {subscription.name} does not reference an install plan yet"
            raise NotReadyError(
                msg,
                details={"namespace": subscription.namespace, "subscription": subscription.name},
            )

        def _approve(obj: dict[str, Any]) -> None:
            obj.setdefault("spec", {})["approved"] = True

        settings = self.cfg.settings
        metrics = self.cfg.metrics
        updated = await update_with_retry(
            self.cfg.store,
            INSTALL_PLAN,
            ref.namespace,
            ref.name,
            _approve,
            attempts=settings.approval_retry_attempts,
            initial_backoff=settings.approval_retry_initial_backoff_seconds,
            max_backoff=settings.approval_retry_max_backoff_seconds,
            on_retry=(lambda _attempt: metrics.record_approval_retry()) if metrics else None,
        )
        plan = InstallPlan.from_kubernetes_object(updated)
        log.info(
            "install_plan_approved",
            install_plan=plan.name,
            namespace=plan.namespace,
            subscription=subscription.name,
        )
        return plan


__all__ = ["InstallPlanApprover"]
