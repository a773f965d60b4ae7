"""OLM resource models and installation errors.

Pydantic models for the operators.coreos.com resources used during
installation, plus the structured error taxonomy.
"""

from olminstall.olm.errors import (
    APIError,
    ConflictError,
    InstallError,
    NotFoundError,
    NotReadyError,
    ResourceVersionConflictError,
    UnsupportedError,
    ValidationError,
    ensure_install_error,
    with_stage,
)
from olminstall.olm.models import (
    CATALOG_SOURCE,
    CLUSTER_SERVICE_VERSION,
    INSTALL_PLAN,
    OPERATOR_GROUP,
    SUBSCRIPTION,
    ApprovalStrategy,
    CatalogSource,
    ClusterServiceVersion,
    CSVPhase,
    InstallMode,
    InstallModeType,
    InstallPlan,
    ObjectRef,
    OperatorGroup,
    ResourceKind,
    Subscription,
    get_supported_install_modes,
    supported_install_modes_from_csv,
)


__all__ = [
    "CATALOG_SOURCE",
    "CLUSTER_SERVICE_VERSION",
    "INSTALL_PLAN",
    "OPERATOR_GROUP",
    "SUBSCRIPTION",
    "APIError",
    "ApprovalStrategy",
    "CSVPhase",
    "CatalogSource",
    "ClusterServiceVersion",
    "ConflictError",
    "InstallError",
    "InstallMode",
    "InstallModeType",
    "InstallPlan",
    "NotFoundError",
    "NotReadyError",
    "ObjectRef",
    "OperatorGroup",
    "ResourceKind",
    "ResourceVersionConflictError",
    "Subscription",
    "UnsupportedError",
    "ValidationError",
    "ensure_install_error",
    "get_supported_install_modes",
    "supported_install_modes_from_csv",
    "with_stage",
]
