"""Install mode resolution.

Decides which namespaces an operator instance watches, given the install mode
the caller asked for and the modes the operator declares as supported.
"""

from __future__ import annotations

from collections.abc import Set

from olminstall.olm.errors import UnsupportedError, ValidationError
from olminstall.olm.models import InstallMode, InstallModeType


ALL_NAMESPACES = InstallModeType.ALL_NAMESPACES.value
OWN_NAMESPACE = InstallModeType.OWN_NAMESPACE.value
SINGLE_NAMESPACE = InstallModeType.SINGLE_NAMESPACE.value


def narrow_supported_modes(
    requested: InstallMode,
    supported: Set[str],
    operator_namespace: str,
    operator_name: str = "",
) -> frozenset[str]:
    """Restrict ``supported`` to the requested mode after checking it.

    An unset ``requested`` leaves ``supported`` unchanged.

    Raises:
        ValidationError: SingleNamespace would watch the operator's own namespace.
        UnsupportedError: The requested mode is not supported, or
            SingleNamespace was requested without a target namespace.
    """
    if requested.is_empty():
        return frozenset(supported)

    mode_type = requested.mode_type.value
    details = {
        "install_mode": str(requested),
        "namespace": operator_namespace,
        "operator": operator_name,
    }

    if requested.mode_type == InstallModeType.SINGLE_NAMESPACE:
        targets = requested.target_namespaces
        if not targets:
            msg = f"install mode {SINGLE_NAMESPACE!r} requires explicit target namespace"
            raise UnsupportedError(msg, details=details)
        if len(targets) != 1:
            msg = f"install mode {SINGLE_NAMESPACE!r} accepts exactly one target namespace, got {targets}"
            raise ValidationError(msg, details=details)
        if OWN_NAMESPACE not in supported and operator_namespace in targets:
            msg = (
                f"cannot watch namespace {operator_namespace!r}: operator {operator_name!r} "
                f"does not support install mode {OWN_NAMESPACE!r}"
            )
            raise ValidationError(msg, details=details)
        if targets[0] == operator_namespace:
            msg = (
                f'use install mode "{OWN_NAMESPACE}" to watch operator\'s namespace '
                f"{operator_namespace!r}"
            )
            raise ValidationError(msg, details=details)

    narrowed = frozenset(supported) & {mode_type}
    if not narrowed:
        msg = f"operator {operator_name!r} does not support install mode {mode_type!r}"
        raise UnsupportedError(msg, details=details)
    return narrowed


def resolve_target_namespaces(
    requested: InstallMode,
    supported: Set[str],
    operator_namespace: str,
) -> list[str]:
    """Pick the target namespaces for a new OperatorGroup.

    Preference order is AllNamespaces, OwnNamespace, then SingleNamespace.

    Returns:
        Empty list for cluster-wide scope, otherwise the namespaces to watch.

    Raises:
        UnsupportedError: Nothing in ``supported`` can be used.
    """
    if ALL_NAMESPACES in supported:
        return []
    if OWN_NAMESPACE in supported:
        return [operator_namespace]
    if SINGLE_NAMESPACE in supported:
        if len(requested.target_namespaces) != 1:
            msg = f"install mode {SINGLE_NAMESPACE!r} requires explicit target namespace"
            raise UnsupportedError(msg, details={"namespace": operator_namespace})
        return list(requested.target_namespaces)
    raise UnsupportedError("no supported install modes", details={"namespace": operator_namespace})


def resolve(
    requested: InstallMode,
    supported: Set[str],
    operator_namespace: str,
    operator_name: str = "",
) -> list[str]:
    """Check ``requested`` against ``supported`` and pick target namespaces."""
    narrowed = narrow_supported_modes(requested, supported, operator_namespace, operator_name)
    return resolve_target_namespaces(requested, narrowed, operator_namespace)


__all__ = ["narrow_supported_modes", "resolve", "resolve_target_namespaces"]
