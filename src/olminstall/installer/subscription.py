"""Subscription creation."""

from __future__ import annotations

from olminstall.installer.configuration import Configuration
from olminstall.observability.logging import get_logger
from olminstall.olm.models import (
    SUBSCRIPTION,
    ApprovalStrategy,
    CatalogSource,
    Subscription,
)


log = get_logger(__name__)


class SubscriptionManager:
    """Creates the Subscription that asks OLM to install a package."""

    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg

    async def create(
        self,
        starting_csv: str,
        package: str,
        channel: str,
        catalog: CatalogSource,
    ) -> Subscription:
        """Subscribe to ``package``/``channel`` from ``catalog``.

        The subscription is named after the starting CSV and uses manual
        install plan approval, so nothing is installed until the plan is
        approved. A single create call is made; an existing subscription of
        the same name surfaces as an ``APIError``.
        """
        subscription = Subscription(
            name=starting_csv,
            namespace=self.cfg.namespace,
            package=package,
            channel=channel,
            starting_csv=starting_csv,
            catalog_source=catalog.name,
            catalog_source_namespace=catalog.namespace,
            install_plan_approval=ApprovalStrategy.MANUAL,
        )
        created = await self.cfg.store.create(SUBSCRIPTION, subscription.to_kubernetes_object())
        subscription = Subscription.from_kubernetes_object(created)
        log.info(
            "subscription_created",
            name=subscription.name,
            namespace=subscription.namespace,
            package=package,
            channel=channel,
            catalog=catalog.name,
        )
        return subscription


__all__ = ["SubscriptionManager"]
