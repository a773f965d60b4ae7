"""Shared configuration handed to every installer component."""

from __future__ import annotations

from dataclasses import dataclass, field

from olminstall.config.settings import InstallSettings
from olminstall.kubernetes.store import ResourceStore
from olminstall.observability.metrics import MetricsCollector


@dataclass
class Configuration:
    """Operator namespace, resource store and tuning used by one installation."""

    namespace: str
    store: ResourceStore
    settings: InstallSettings = field(default_factory=InstallSettings)
    metrics: MetricsCollector | None = None


__all__ = ["Configuration"]
