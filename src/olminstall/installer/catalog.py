"""Catalog publication.

A CatalogSource makes a package index available to OLM. The default creator
points a gRPC CatalogSource at an index image; OLM runs the registry pod.
"""

from __future__ import annotations

from typing import Protocol

from olminstall.installer.configuration import Configuration
from olminstall.kubernetes.polling import poll_until
from olminstall.observability.logging import get_logger
from olminstall.olm.errors import NotReadyError
from olminstall.olm.models import CATALOG_SOURCE, CatalogSource


log = get_logger(__name__)


class CatalogCreator(Protocol):
    """Publishes a catalog exposing the operator's package index."""

    async def create_catalog(self, name: str) -> CatalogSource: ...


class IndexImageCatalogCreator:
    """Creates a gRPC CatalogSource serving ``index_image``."""

    def __init__(
        self,
        cfg: Configuration,
        index_image: str,
        display_name: str = "",
        publisher: str = "olminstall",
    ) -> None:
        self.cfg = cfg
        self.index_image = index_image
        self.display_name = display_name
        self.publisher = publisher

    async def create_catalog(self, name: str) -> CatalogSource:
        catalog = CatalogSource(
            name=name,
            namespace=self.cfg.namespace,
            image=self.index_image,
            display_name=self.display_name or name,
            publisher=self.publisher,
        )
        created = await self.cfg.store.create(CATALOG_SOURCE, catalog.to_kubernetes_object())
        catalog = CatalogSource.from_kubernetes_object(created)
        log.info(
            "catalog_source_created",
            name=catalog.name,
            namespace=catalog.namespace,
            image=catalog.image,
        )
        return catalog


async def wait_for_catalog_source(
    cfg: Configuration,
    catalog: CatalogSource,
    deadline: float | None,
) -> CatalogSource:
    """Poll until the catalog's registry connection is reported READY.

    OLM can be slow to publish the connection state even when its catalog
    operator is already connected, so installs only gate on this when
    ``wait_for_catalog_source`` is enabled.
    """
    latest = catalog

    async def _ready() -> bool:
        nonlocal latest
        obj = await cfg.store.get(CATALOG_SOURCE, catalog.namespace, catalog.name)
        latest = CatalogSource.from_kubernetes_object(obj)
        return latest.is_ready()

    try:
        await poll_until(
            _ready,
            interval=cfg.settings.poll_interval_seconds,
            deadline=deadline,
            description=f"CatalogSource {catalog.namespace}/{catalog.name}",
        )
    except NotReadyError as e:
        msg = (
            f"catalog source connection is not ready: {catalog.namespace}/{catalog.name} "
            f"(last state: {latest.connection_state or 'unknown'})"
        )
        raise NotReadyError(
            msg,
            details={"namespace": catalog.namespace, "catalog_source": catalog.name},
        ) from e

    log.info("catalog_source_ready", name=latest.name, namespace=latest.namespace)
    return latest


__all__ = ["CatalogCreator", "IndexImageCatalogCreator", "wait_for_catalog_source"]
