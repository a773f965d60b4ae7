"""olminstall Kubernetes package.

Resource store access, polling and optimistic-concurrency retry.
"""

from olminstall.kubernetes.polling import deadline_after, deadline_expired, poll_until
from olminstall.kubernetes.retry import retry_on_conflict, update_with_retry
from olminstall.kubernetes.store import (
    KubernetesResourceStore,
    ResourceStore,
    default_namespace,
    load_api_client,
    translate_api_exception,
)


__all__ = [
    "KubernetesResourceStore",
    "ResourceStore",
    "deadline_after",
    "deadline_expired",
    "default_namespace",
    "load_api_client",
    "poll_until",
    "retry_on_conflict",
    "translate_api_exception",
    "update_with_retry",
]
