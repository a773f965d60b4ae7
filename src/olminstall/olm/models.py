"""Pydantic models for the OLM resources olminstall reads and writes.

API Group: operators.coreos.com
- OperatorGroup (v1)
- CatalogSource, Subscription, InstallPlan, ClusterServiceVersion (v1alpha1)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from olminstall.olm.errors import ValidationError


OLM_API_GROUP = "operators.coreos.com"
OLM_API_VERSION_V1 = "v1"
OLM_API_VERSION_V1ALPHA1 = "v1alpha1"

CATALOG_SOURCE_READY_STATE = "READY"


@dataclass(frozen=True)
class ResourceKind:
    """Coordinates of a namespaced OLM custom resource."""

    kind: str
    version: str
    plural: str
    group: str = OLM_API_GROUP

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


OPERATOR_GROUP = ResourceKind("OperatorGroup", OLM_API_VERSION_V1, "operatorgroups")
CATALOG_SOURCE = ResourceKind("CatalogSource", OLM_API_VERSION_V1ALPHA1, "catalogsources")
SUBSCRIPTION = ResourceKind("Subscription", OLM_API_VERSION_V1ALPHA1, "subscriptions")
INSTALL_PLAN = ResourceKind("InstallPlan", OLM_API_VERSION_V1ALPHA1, "installplans")
CLUSTER_SERVICE_VERSION = ResourceKind(
    "ClusterServiceVersion", OLM_API_VERSION_V1ALPHA1, "clusterserviceversions"
)


class InstallModeType(str, Enum):
    """Namespace-scoping strategy an operator can be installed with."""

    ALL_NAMESPACES = "AllNamespaces"
    OWN_NAMESPACE = "OwnNamespace"
    SINGLE_NAMESPACE = "SingleNamespace"


class ApprovalStrategy(str, Enum):
    """Install plan approval strategy of a Subscription."""

    AUTOMATIC = "Automatic"
    MANUAL = "Manual"


class CSVPhase(str, Enum):
    """ClusterServiceVersion lifecycle phase."""

    PENDING = "Pending"
    INSTALL_READY = "InstallReady"
    INSTALLING = "Installing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"
    REPLACING = "Replacing"
    DELETING = "Deleting"


def _metadata(obj: dict[str, Any]) -> dict[str, Any]:
    return obj.get("metadata") or {}


def _new_object(kind: ResourceKind, name: str, namespace: str) -> dict[str, Any]:
    return {
        "apiVersion": kind.api_version,
        "kind": kind.kind,
        "metadata": {"name": name, "namespace": namespace},
    }


class InstallMode(BaseModel):
    """Install mode requested by the caller.

    ``mode_type`` of None means no mode was requested and one is chosen from
    the operator's supported modes.
    """

    mode_type: InstallModeType | None = Field(
        default=None, alias="type", description="Requested install mode type"
    )
    target_namespaces: list[str] = Field(
        default_factory=list,
        alias="targetNamespaces",
        description="Namespaces the operator should watch",
    )

    class Config:
        populate_by_name = True

    def is_empty(self) -> bool:
        """Whether no install mode was requested."""
        return self.mode_type is None

    def __str__(self) -> str:
        if self.mode_type is None:
            return ""
        if not self.target_namespaces:
            return self.mode_type.value
        return f"{self.mode_type.value}={','.join(self.target_namespaces)}"

    @classmethod
    def parse(cls, value: str | None) -> InstallMode:
        """Parse the ``TYPE[=ns1[,ns2...]]`` flag form.

        An empty value yields an unset install mode.

        Raises:
            ValidationError: If the type is unknown or the targets do not fit it.
        """
        if value is None or not value.strip():
            return cls()

        type_part, _, namespaces_part = value.strip().partition("=")
        try:
            mode_type = InstallModeType(type_part.strip())
        except ValueError:
            valid = ", ".join(m.value for m in InstallModeType)
            msg = f"unsupported install mode type {type_part.strip()!r}, must be one of: {valid}"
            raise ValidationError(msg, details={"install_mode": value}) from None

        namespaces = [ns.strip() for ns in namespaces_part.split(",")] if namespaces_part else []
        if any(not ns for ns in namespaces):
            msg = f"install mode {value!r} contains an empty target namespace"
            raise ValidationError(msg, details={"install_mode": value})

        if mode_type == InstallModeType.SINGLE_NAMESPACE:
            if len(namespaces) != 1:
                msg = f"install mode {mode_type.value!r} requires exactly one target namespace"
                raise ValidationError(msg, details={"install_mode": value})
        elif namespaces:
            msg = f"install mode {mode_type.value!r} does not accept target namespaces"
            raise ValidationError(msg, details={"install_mode": value})

        return cls(mode_type=mode_type, target_namespaces=namespaces)


def get_supported_install_modes(modes: Iterable[tuple[str, bool]]) -> frozenset[str]:
    """Collect the mode types an operator declares as supported.

    Args:
        modes: ``(type, supported)`` pairs as listed by the CSV.

    Returns:
        Set of supported mode type strings; empty means not installable.
    """
    return frozenset(mode_type for mode_type, supported in modes if supported)


def supported_install_modes_from_csv(obj: dict[str, Any]) -> frozenset[str]:
    """Read ``spec.installModes`` from a raw ClusterServiceVersion object."""
    install_modes = (obj.get("spec") or {}).get("installModes") or []
    return get_supported_install_modes(
        (mode.get("type", ""), bool(mode.get("supported", False))) for mode in install_modes
    )


class OperatorGroup(BaseModel):
    """Namespace-scoping resource; at most one may exist per namespace."""

    name: str
    namespace: str
    target_namespaces: list[str] = Field(default_factory=list, alias="targetNamespaces")
    resource_version: str | None = Field(default=None, alias="resourceVersion")

    class Config:
        populate_by_name = True

    def to_kubernetes_object(self) -> dict[str, Any]:
        """Convert to the Kubernetes API dict format."""
        obj = _new_object(OPERATOR_GROUP, self.name, self.namespace)
        # No targets means the group selects every namespace
        obj["spec"] = {"targetNamespaces": list(self.target_namespaces)} if self.target_namespaces else {}
        return obj

    @classmethod
    def from_kubernetes_object(cls, obj: dict[str, Any]) -> OperatorGroup:
        """Create an OperatorGroup from a raw Kubernetes API response."""
        metadata = _metadata(obj)
        spec = obj.get("spec") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            target_namespaces=list(spec.get("targetNamespaces") or []),
            resource_version=metadata.get("resourceVersion"),
        )


class CatalogSource(BaseModel):
    """Catalog exposing an operator package index."""

    name: str
    namespace: str
    image: str = ""
    source_type: str = Field(default="grpc", alias="sourceType")
    display_name: str = Field(default="", alias="displayName")
    publisher: str = ""
    connection_state: str | None = Field(default=None, alias="connectionState")

    class Config:
        populate_by_name = True

    def is_ready(self) -> bool:
        """Whether the catalog's registry connection is reported READY."""
        return self.connection_state == CATALOG_SOURCE_READY_STATE

    def to_kubernetes_object(self) -> dict[str, Any]:
        """Convert to the Kubernetes API dict format."""
        obj = _new_object(CATALOG_SOURCE, self.name, self.namespace)
        obj["spec"] = {
            "sourceType": self.source_type,
            "image": self.image,
            "displayName": self.display_name or self.name,
            "publisher": self.publisher,
        }
        return obj

    @classmethod
    def from_kubernetes_object(cls, obj: dict[str, Any]) -> CatalogSource:
        """Create a CatalogSource from a raw Kubernetes API response."""
        metadata = _metadata(obj)
        spec = obj.get("spec") or {}
        connection = (obj.get("status") or {}).get("connectionState") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            image=spec.get("image", ""),
            source_type=spec.get("sourceType", "grpc"),
            display_name=spec.get("displayName", ""),
            publisher=spec.get("publisher", ""),
            connection_state=connection.get("lastObservedState"),
        )


class ObjectRef(BaseModel):
    """Namespaced reference to another resource."""

    name: str
    namespace: str


class Subscription(BaseModel):
    """Intent to install a package channel from a catalog."""

    name: str
    namespace: str
    package: str
    channel: str
    starting_csv: str = Field(alias="startingCSV")
    catalog_source: str = Field(alias="source")
    catalog_source_namespace: str = Field(alias="sourceNamespace")
    install_plan_approval: ApprovalStrategy = Field(
        default=ApprovalStrategy.MANUAL, alias="installPlanApproval"
    )
    install_plan_ref: ObjectRef | None = Field(default=None, alias="installPlanRef")

    class Config:
        populate_by_name = True

    def to_kubernetes_object(self) -> dict[str, Any]:
        """Convert to the Kubernetes API dict format."""
        obj = _new_object(SUBSCRIPTION, self.name, self.namespace)
        obj["spec"] = {
            "name": self.package,
            "channel": self.channel,
            "startingCSV": self.starting_csv,
            "source": self.catalog_source,
            "sourceNamespace": self.catalog_source_namespace,
            "installPlanApproval": self.install_plan_approval.value,
        }
        return obj

    @classmethod
    def from_kubernetes_object(cls, obj: dict[str, Any]) -> Subscription:
        """Create a Subscription from a raw Kubernetes API response."""
        metadata = _metadata(obj)
        spec = obj.get("spec") or {}
        ref = (obj.get("status") or {}).get("installPlanRef")
        install_plan_ref = None
        if ref and ref.get("name"):
            install_plan_ref = ObjectRef(
                name=ref["name"],
                namespace=ref.get("namespace") or metadata.get("namespace", ""),
            )
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            package=spec.get("name", ""),
            channel=spec.get("channel", ""),
            starting_csv=spec.get("startingCSV", ""),
            catalog_source=spec.get("source", ""),
            catalog_source_namespace=spec.get("sourceNamespace", ""),
            install_plan_approval=spec.get("installPlanApproval", ApprovalStrategy.MANUAL.value),
            install_plan_ref=install_plan_ref,
        )


class InstallPlan(BaseModel):
    """Generated, approvable description of an installation."""

    name: str
    namespace: str
    approved: bool = False
    resource_version: str | None = Field(default=None, alias="resourceVersion")

    class Config:
        populate_by_name = True

    @classmethod
    def from_kubernetes_object(cls, obj: dict[str, Any]) -> InstallPlan:
        """Create an InstallPlan from a raw Kubernetes API response."""
        metadata = _metadata(obj)
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            approved=bool((obj.get("spec") or {}).get("approved", False)),
            resource_version=metadata.get("resourceVersion"),
        )


class ClusterServiceVersion(BaseModel):
    """One installed version of an operator."""

    name: str
    namespace: str
    phase: str = ""
    message: str = ""
    supported_install_modes: frozenset[str] = Field(default_factory=frozenset)

    def succeeded(self) -> bool:
        """Whether the CSV reached its terminal success phase."""
        return self.phase == CSVPhase.SUCCEEDED.value

    def to_summary(self) -> dict[str, Any]:
        """Short, printable description of the CSV."""
        return {
            "name": self.name,
            "namespace": self.namespace,
            "phase": self.phase,
            "message": self.message,
            "installModes": sorted(self.supported_install_modes),
        }

    @classmethod
    def from_kubernetes_object(cls, obj: dict[str, Any]) -> ClusterServiceVersion:
        """Create a ClusterServiceVersion from a raw Kubernetes API response."""
        metadata = _metadata(obj)
        status = obj.get("status") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            phase=status.get("phase", ""),
            message=status.get("message", ""),
            supported_install_modes=supported_install_modes_from_csv(obj),
        )


__all__ = [
    "CATALOG_SOURCE",
    "CATALOG_SOURCE_READY_STATE",
    "CLUSTER_SERVICE_VERSION",
    "INSTALL_PLAN",
    "OLM_API_GROUP",
    "OPERATOR_GROUP",
    "SUBSCRIPTION",
    "ApprovalStrategy",
    "CSVPhase",
    "CatalogSource",
    "ClusterServiceVersion",
    "InstallMode",
    "InstallModeType",
    "InstallPlan",
    "ObjectRef",
    "OperatorGroup",
    "ResourceKind",
    "Subscription",
    "get_supported_install_modes",
    "supported_install_modes_from_csv",
]
