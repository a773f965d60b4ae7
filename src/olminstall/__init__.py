"""olminstall - install packaged operators through the Operator Lifecycle Manager.

Drives the OLM API through catalog creation, OperatorGroup reconciliation,
subscription, install plan approval and ClusterServiceVersion readiness.
"""

from olminstall.version import __version__


__all__ = ["__version__"]
