"""OperatorGroup reconciliation.

OLM allows at most one OperatorGroup per namespace; CSVs in a namespace with
more than one are never installed. The reconciler therefore adopts an
existing, compatible group as-is and only creates one when none exists.
Nothing here repairs or deletes existing groups.
"""

from __future__ import annotations

from collections.abc import Set

from olminstall.installer.configuration import Configuration
from olminstall.installer.install_mode import (
    ALL_NAMESPACES,
    OWN_NAMESPACE,
    SINGLE_NAMESPACE,
    narrow_supported_modes,
    resolve_target_namespaces,
)
from olminstall.observability.logging import get_logger
from olminstall.olm.errors import ConflictError, UnsupportedError, ValidationError
from olminstall.olm.models import OPERATOR_GROUP, InstallMode, OperatorGroup


log = get_logger(__name__)


class OperatorGroupReconciler:
    """Ensures the operator namespace has exactly one usable OperatorGroup."""

    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg

    async def get(self) -> OperatorGroup | None:
        """Return the namespace's OperatorGroup, or None if there is none.

        Raises:
            ConflictError: More than one OperatorGroup exists.
            APIError: Listing failed.
        """
        items = await self.cfg.store.list(OPERATOR_GROUP, self.cfg.namespace)
        if not items:
            return None
        groups = [OperatorGroup.from_kubernetes_object(item) for item in items]
        if len(groups) > 1:
            names = [group.name for group in groups]
            msg = f"more than one operator group in namespace {self.cfg.namespace}: {names}"
            raise ConflictError(
                msg, details={"namespace": self.cfg.namespace, "operator_groups": names}
            )
        return groups[0]

    async def ensure(
        self,
        requested: InstallMode,
        supported: Set[str],
        operator_name: str = "",
    ) -> OperatorGroup:
        """Find or create the OperatorGroup the operator will run under.

        Args:
            requested: Install mode asked for by the caller (may be unset).
            supported: Install mode types the operator supports.
            operator_name: CSV name, used in error messages.

        Returns:
            The existing group (unmodified) or the newly created one.
        """
        existing = await self.get()

        if not supported:
            msg = f"operator {operator_name!r} is not installable: no supported install modes"
            raise UnsupportedError(msg, details={"namespace": self.cfg.namespace})

        narrowed = narrow_supported_modes(requested, supported, self.cfg.namespace, operator_name)

        if existing is None:
            target_namespaces = resolve_target_namespaces(requested, narrowed, self.cfg.namespace)
            group = await self.create(target_namespaces)
            log.info(
                "operator_group_created",
                name=group.name,
                namespace=group.namespace,
                target_namespaces=group.target_namespaces,
            )
            return group

        self.validate(existing, narrowed, requested)
        log.info(
            "operator_group_adopted",
            name=existing.name,
            namespace=existing.namespace,
            target_namespaces=existing.target_namespaces,
        )
        return existing

    async def create(self, target_namespaces: list[str]) -> OperatorGroup:
        """Create the well-known OperatorGroup in the operator namespace.

        Not retried: a concurrent creator surfaces as an ``APIError``.
        """
        group = OperatorGroup(
            name=self.cfg.settings.operator_group_name,
            namespace=self.cfg.namespace,
            target_namespaces=target_namespaces,
        )
        created = await self.cfg.store.create(OPERATOR_GROUP, group.to_kubernetes_object())
        return OperatorGroup.from_kubernetes_object(created)

    def validate(
        self,
        existing: OperatorGroup,
        supported: Set[str],
        requested: InstallMode,
    ) -> None:
        """Check that ``existing`` can host an operator with ``supported`` modes.

        Raises:
            ValidationError: The group's target namespaces fit none of the modes.
        """
        group_targets = set(existing.target_namespaces)

        if (
            (ALL_NAMESPACES in supported and not group_targets)
            or (OWN_NAMESPACE in supported and group_targets == {self.cfg.namespace})
            or (
                SINGLE_NAMESPACE in supported
                and group_targets == set(requested.target_namespaces)
            )
        ):
            return

        details = {
            "namespace": existing.namespace,
            "operator_group": existing.name,
            "target_namespaces": existing.target_namespaces,
            "supported_install_modes": sorted(supported),
        }
        if requested.is_empty():
            msg = (
                f"existing operatorgroup {existing.name!r} is not compatible with any "
                "supported package install modes"
            )
        else:
            msg = (
                f"existing operatorgroup {existing.name!r} is not compatible with "
                f"install mode {str(requested)!r}"
            )
            details["install_mode"] = str(requested)
        raise ValidationError(msg, details=details)


__all__ = ["OperatorGroupReconciler"]
