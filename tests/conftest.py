"""Pytest configuration and fixtures for olminstall tests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pytest

from olminstall.config.settings import InstallSettings
from olminstall.installer.configuration import Configuration

from tests.fakes import OPERATOR_NAMESPACE, FakeResourceStore

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    """Reset settings cache before each test."""
    from olminstall.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None, None, None]:
    """Undo handler changes made by configure_logging."""
    root_logger = logging.getLogger()
    handlers, level = list(root_logger.handlers), root_logger.level
    yield
    root_logger.handlers = handlers
    root_logger.setLevel(level)


@pytest.fixture
def store() -> FakeResourceStore:
    """Empty in-memory resource store."""
    return FakeResourceStore()


@pytest.fixture
def install_settings() -> InstallSettings:
    """Install settings with fast polling and no retry backoff."""
    return InstallSettings(
        timeout_seconds=5.0,
        poll_interval_seconds=0.01,
        approval_retry_attempts=5,
        approval_retry_initial_backoff_seconds=0.0,
        approval_retry_max_backoff_seconds=0.0,
    )


@pytest.fixture
def cfg(store: FakeResourceStore, install_settings: InstallSettings) -> Configuration:
    """Configuration for the operator namespace ``testns``."""
    return Configuration(namespace=OPERATOR_NAMESPACE, store=store, settings=install_settings)


@pytest.fixture
def all_install_modes() -> frozenset[str]:
    """Every install mode an operator can declare."""
    return frozenset({"SingleNamespace", "OwnNamespace", "AllNamespaces"})


@pytest.fixture
def sample_csv_object() -> dict[str, Any]:
    """ClusterServiceVersion as served by the API once installed."""
    return {
        "apiVersion": "operators.coreos.com/v1alpha1",
        "kind": "ClusterServiceVersion",
        "metadata": {"name": "etcdoperator.v0.9.4", "namespace": OPERATOR_NAMESPACE},
        "spec": {
            "installModes": [
                {"type": "OwnNamespace", "supported": True},
                {"type": "SingleNamespace", "supported": True},
                {"type": "MultiNamespace", "supported": False},
                {"type": "AllNamespaces", "supported": True},
            ],
        },
        "status": {"phase": "Succeeded", "message": "install strategy completed with no errors"},
    }
