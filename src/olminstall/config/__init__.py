"""olminstall configuration package.

Centralized configuration management using Pydantic Settings.
"""

from olminstall.config.settings import (
    InstallSettings,
    KubernetesSettings,
    ObservabilitySettings,
    Settings,
    get_settings,
    reload_settings,
)

__all__: list[str] = [
    "InstallSettings",
    "KubernetesSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
    "reload_settings",
]
