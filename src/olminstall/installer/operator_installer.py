"""Operator installation pipeline.

Installs an operator through OLM in a fixed sequence of stages:

1. create_catalog - publish the CatalogSource for the package index
2. wait_for_catalog_source - optional, see ``wait_for_catalog_source`` setting
3. ensure_operator_group - adopt or create the namespace's OperatorGroup
4. create_subscription - subscribe with manual install plan approval
5. wait_for_install_plan - wait for OLM to generate the install plan
6. approve_install_plan - approve it
7. wait_for_csv - wait for the CSV to reach Succeeded and fetch it

The first failing stage aborts the installation. Resources created by
earlier stages are left in place; removing them is up to the caller.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable
from typing import TypeVar

from pydantic import BaseModel, Field

from olminstall.installer.catalog import CatalogCreator, wait_for_catalog_source
from olminstall.installer.configuration import Configuration
from olminstall.installer.csv_waiter import CSVWaiter, InstallationWaiter
from olminstall.installer.install_plan import InstallPlanApprover
from olminstall.installer.operator_group import OperatorGroupReconciler
from olminstall.installer.subscription import SubscriptionManager
from olminstall.kubernetes.polling import deadline_after
from olminstall.observability.logging import LogContext, get_logger
from olminstall.olm.errors import InstallError, ensure_install_error, with_stage
from olminstall.olm.models import ClusterServiceVersion, InstallMode


log = get_logger(__name__)

T = TypeVar("T")

STAGE_CREATE_CATALOG = "create_catalog"
STAGE_WAIT_FOR_CATALOG_SOURCE = "wait_for_catalog_source"
STAGE_ENSURE_OPERATOR_GROUP = "ensure_operator_group"
STAGE_CREATE_SUBSCRIPTION = "create_subscription"
STAGE_WAIT_FOR_INSTALL_PLAN = "wait_for_install_plan"
STAGE_APPROVE_INSTALL_PLAN = "approve_install_plan"
STAGE_WAIT_FOR_CSV = "wait_for_csv"


class InstallParams(BaseModel):
    """What to install and how to scope it."""

    package_name: str = Field(min_length=1, description="Package name in the catalog")
    channel: str = Field(min_length=1, description="Channel to subscribe to")
    starting_csv: str = Field(min_length=1, description="CSV name to start the subscription at")
    catalog_name: str = Field(min_length=1, description="Name of the CatalogSource to create")
    supported_install_modes: frozenset[str] = Field(
        default_factory=frozenset,
        description="Install mode types the operator's CSV declares as supported",
    )
    install_mode: InstallMode = Field(
        default_factory=InstallMode,
        description="Requested install mode; unset lets the installer choose",
    )


class OperatorInstaller:
    """Drives one operator installation through OLM."""

    def __init__(
        self,
        cfg: Configuration,
        catalog_creator: CatalogCreator,
        csv_waiter: CSVWaiter | None = None,
    ) -> None:
        self.cfg = cfg
        self.catalog_creator = catalog_creator
        self.operator_groups = OperatorGroupReconciler(cfg)
        self.subscriptions = SubscriptionManager(cfg)
        self.install_plans = InstallPlanApprover(cfg)
        self.installation = InstallationWaiter(cfg, csv_waiter)

    async def install_operator(
        self,
        params: InstallParams,
        timeout: float | None = None,
    ) -> ClusterServiceVersion:
        """Install the operator described by ``params``.

        Args:
            params: Package, channel, starting CSV, catalog and install mode.
            timeout: Seconds all waits share (default: settings.timeout_seconds).

        Returns:
            The installed ClusterServiceVersion in phase Succeeded.

        Raises:
            InstallError: The failing stage is recorded in ``error.stage``.
        """
        deadline = deadline_after(timeout if timeout is not None else self.cfg.settings.timeout_seconds)

        with LogContext(package=params.package_name, namespace=self.cfg.namespace):
            try:
                csv = await self._run_pipeline(params, deadline)
            except InstallError as e:
                log.error("operator_install_failed", stage=e.stage, error=e.message)
                if self.cfg.metrics is not None:
                    self.cfg.metrics.record_install("failed", e.stage)
                raise

            log.info("operator_installed", csv=csv.name, phase=csv.phase)
            if self.cfg.metrics is not None:
                self.cfg.metrics.record_install("succeeded")
            return csv

    async def _run_pipeline(
        self,
        params: InstallParams,
        deadline: float | None,
    ) -> ClusterServiceVersion:
        catalog = await self._stage(
            STAGE_CREATE_CATALOG,
            self.catalog_creator.create_catalog(params.catalog_name),
        )

        if self.cfg.settings.wait_for_catalog_source:
            catalog = await self._stage(
                STAGE_WAIT_FOR_CATALOG_SOURCE,
                wait_for_catalog_source(self.cfg, catalog, deadline),
            )

        await self._stage(
            STAGE_ENSURE_OPERATOR_GROUP,
            self.operator_groups.ensure(
                params.install_mode, params.supported_install_modes, params.starting_csv
            ),
        )

        subscription = await self._stage(
            STAGE_CREATE_SUBSCRIPTION,
            self.subscriptions.create(
                params.starting_csv, params.package_name, params.channel, catalog
            ),
        )

        subscription = await self._stage(
            STAGE_WAIT_FOR_INSTALL_PLAN,
            self.install_plans.wait_for_install_plan(subscription, deadline),
        )

        await self._stage(
            STAGE_APPROVE_INSTALL_PLAN,
            self.install_plans.approve(subscription),
        )

        return await self._stage(
            STAGE_WAIT_FOR_CSV,
            self.installation.wait(params.starting_csv, deadline),
        )

    async def _stage(self, stage: str, operation: Awaitable[T]) -> T:
        """Await one stage, recording its name on any error it raises."""
        start = time.monotonic()
        log.debug("install_stage_started", stage=stage)
        try:
            return await operation
        except InstallError as e:
            raise with_stage(e, stage)
        except Exception as e:
            raise ensure_install_error(e, stage=stage, details={"namespace": self.cfg.namespace}) from e
        finally:
            if self.cfg.metrics is not None:
                self.cfg.metrics.observe_stage(stage, time.monotonic() - start)


__all__ = [
    "STAGE_APPROVE_INSTALL_PLAN",
    "STAGE_CREATE_CATALOG",
    "STAGE_CREATE_SUBSCRIPTION",
    "STAGE_ENSURE_OPERATOR_GROUP",
    "STAGE_WAIT_FOR_CATALOG_SOURCE",
    "STAGE_WAIT_FOR_CSV",
    "STAGE_WAIT_FOR_INSTALL_PLAN",
    "InstallParams",
    "OperatorInstaller",
]
