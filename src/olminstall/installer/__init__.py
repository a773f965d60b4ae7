"""olminstall installer package.

Install mode resolution, OperatorGroup reconciliation, subscription and
install plan handling, and the pipeline that composes them.
"""

from olminstall.installer.catalog import (
    CatalogCreator,
    IndexImageCatalogCreator,
    wait_for_catalog_source,
)
from olminstall.installer.configuration import Configuration
from olminstall.installer.csv_waiter import CSVPhaseWaiter, CSVWaiter, InstallationWaiter
from olminstall.installer.install_mode import (
    narrow_supported_modes,
    resolve,
    resolve_target_namespaces,
)
from olminstall.installer.install_plan import InstallPlanApprover
from olminstall.installer.operator_group import OperatorGroupReconciler
from olminstall.installer.operator_installer import InstallParams, OperatorInstaller
from olminstall.installer.subscription import SubscriptionManager


__all__ = [
    "CSVPhaseWaiter",
    "CSVWaiter",
    "CatalogCreator",
    "Configuration",
    "IndexImageCatalogCreator",
    "InstallParams",
    "InstallPlanApprover",
    "InstallationWaiter",
    "OperatorGroupReconciler",
    "OperatorInstaller",
    "SubscriptionManager",
    "narrow_supported_modes",
    "resolve",
    "resolve_target_namespaces",
    "wait_for_catalog_source",
]
