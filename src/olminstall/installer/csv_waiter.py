"""Waiting for the installed ClusterServiceVersion."""

from __future__ import annotations

from typing import Protocol

from olminstall.installer.configuration import Configuration
from olminstall.kubernetes.polling import poll_until
from olminstall.observability.logging import get_logger
from olminstall.olm.errors import NotFoundError, NotReadyError
from olminstall.olm.models import CLUSTER_SERVICE_VERSION, ClusterServiceVersion, CSVPhase


log = get_logger(__name__)


class CSVWaiter(Protocol):
    """Blocks until a CSV reaches its terminal success phase."""

    async def wait_for_success(self, namespace: str, name: str, deadline: float | None) -> None:
        """Raise ``NotReadyError`` if the deadline passes first."""
        ...


class CSVPhaseWaiter:
    """``CSVWaiter`` that polls ``status.phase`` of the CSV.

    A missing CSV is not an error: OLM creates it only after the install
    plan has been executed. A ``Failed`` phase is not terminal either, as OLM
    keeps retrying the install.
    """

    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg

    async def wait_for_success(self, namespace: str, name: str, deadline: float | None) -> None:
        last_phase = ""

        async def _succeeded() -> bool:
            nonlocal last_phase
            try:
                obj = await self.cfg.store.get(CLUSTER_SERVICE_VERSION, namespace, name)
            except NotFoundError:
                return False
            csv = ClusterServiceVersion.from_kubernetes_object(obj)
            if csv.phase != last_phase:
                log.info("csv_phase_changed", csv=name, namespace=namespace, phase=csv.phase)
                last_phase = csv.phase
            return csv.succeeded()

        try:
            await poll_until(
                _succeeded,
                interval=self.cfg.settings.poll_interval_seconds,
                deadline=deadline,
                description=f"ClusterServiceVersion {namespace}/{name}",
            )
        except NotReadyError as e:
            msg = (
                f"ClusterServiceVersion {namespace}/{name} did not reach phase "
                f"{CSVPhase.SUCCEEDED.value!r} (last phase: {last_phase or 'not found'})"
            )
            raise NotReadyError(
                msg,
                details={"namespace": namespace, "csv": name, "last_phase": last_phase},
            ) from e


class InstallationWaiter:
    """Waits for the operator's CSV to succeed and returns it.

    The state of the resources the CSV manages is not inspected.
    """

    def __init__(self, cfg: Configuration, waiter: CSVWaiter | None = None) -> None:
        self.cfg = cfg
        self.waiter = waiter or CSVPhaseWaiter(cfg)

    async def wait(self, csv_name: str, deadline: float | None) -> ClusterServiceVersion:
        """Wait for ``csv_name`` to succeed, then fetch it once."""
        log.info(
            "waiting_for_csv",
            csv=csv_name,
            namespace=self.cfg.namespace,
            phase=CSVPhase.SUCCEEDED.value,
        )
        await self.waiter.wait_for_success(self.cfg.namespace, csv_name, deadline)
        obj = await self.cfg.store.get(CLUSTER_SERVICE_VERSION, self.cfg.namespace, csv_name)
        return ClusterServiceVersion.from_kubernetes_object(obj)


__all__ = ["CSVPhaseWaiter", "CSVWaiter", "InstallationWaiter"]
