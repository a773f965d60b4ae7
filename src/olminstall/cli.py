"""olminstall command line interface.

Thin wrapper around the installer: parses flags, loads settings, configures
logging and prints results. All installation logic lives in
``olminstall.installer``.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from kubernetes.config import ConfigException
from pydantic import ValidationError as PydanticValidationError

from olminstall.config.settings import Settings, get_settings
from olminstall.observability.logging import configure_logging, get_logger
from olminstall.olm.errors import InstallError, ValidationError
from olminstall.olm.models import InstallMode, supported_install_modes_from_csv
from olminstall.version import __version__

if TYPE_CHECKING:
    from argparse import Namespace

    from olminstall.installer import InstallParams


log = get_logger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="olminstall",
        description="Install an operator through the Operator Lifecycle Manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  olminstall install --package etcd --channel alpha --starting-csv etcdoperator.v0.9.4 \\
      --index-image quay.io/example/etcd-index:latest --csv-file etcd.clusterserviceversion.yaml
  olminstall install ... --install-mode SingleNamespace=team-a
  olminstall resolve --supported-install-modes OwnNamespace,SingleNamespace -n operators
        """,
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for debug logs)",
    )

    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default=None,
        help="Log output format (default: from settings)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Install command
    install_parser = subparsers.add_parser("install", help="Install an operator with OLM")
    install_parser.add_argument("--package", required=True, help="Package name in the index")
    install_parser.add_argument("--channel", required=True, help="Channel to subscribe to")
    install_parser.add_argument(
        "--starting-csv",
        default=None,
        help="CSV to start the subscription at (default: name in --csv-file)",
    )
    install_parser.add_argument(
        "--catalog-name",
        default=None,
        help="Name of the CatalogSource to create (default: <package>-catalog)",
    )
    install_parser.add_argument(
        "--index-image",
        default=None,
        help="Index image served by the CatalogSource (default: from settings)",
    )
    _add_install_mode_arguments(install_parser)
    install_parser.add_argument(
        "--csv-file",
        type=Path,
        default=None,
        help="ClusterServiceVersion manifest to read supported install modes from",
    )
    install_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the installation (default: from settings)",
    )
    install_parser.add_argument("--kubeconfig", default=None, help="Path to kubeconfig file")
    install_parser.add_argument("--context", default=None, help="Kubeconfig context to use")

    # Resolve command
    resolve_parser = subparsers.add_parser(
        "resolve", help="Show the target namespaces an install mode resolves to"
    )
    _add_install_mode_arguments(
        resolve_parser,
        namespace_help=(
            "Namespace the operator would be installed into "
            "(default: OLMINSTALL_K8S_NAMESPACE, else 'default')"
        ),
    )
    resolve_parser.add_argument(
        "--csv-file",
        type=Path,
        default=None,
        help="ClusterServiceVersion manifest to read supported install modes from",
    )

    return parser


def _add_install_mode_arguments(
    parser: argparse.ArgumentParser,
    namespace_help: str = (
        "Namespace to install the operator into (default: kubeconfig context namespace)"
    ),
) -> None:
    parser.add_argument("--namespace", "-n", default=None, help=namespace_help)
    parser.add_argument(
        "--install-mode",
        default=None,
        help="AllNamespaces, OwnNamespace or SingleNamespace=<ns> (default: chosen automatically)",
    )
    parser.add_argument(
        "--supported-install-modes",
        default=None,
        help="Comma separated install modes the operator supports (overrides --csv-file)",
    )


def _load_csv_manifest(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as handle:
            manifest = yaml.safe_load(handle)
    except OSError as e:
        msg = f"cannot read {path}: {e.strerror or e}"
        raise ValidationError(msg, code="invalid_argument", details={"path": str(path)}) from e
    except yaml.YAMLError as e:
        msg = f"{path} is not valid YAML"
        raise ValidationError(
            msg, code="invalid_argument", details={"path": str(path), "error": str(e)}
        ) from e
    if not isinstance(manifest, dict) or manifest.get("kind") != "ClusterServiceVersion":
        msg = f"{path} is not a ClusterServiceVersion manifest"
        raise ValidationError(msg, code="invalid_argument", details={"path": str(path)})
    return manifest


def _supported_modes(args: Namespace, manifest: dict[str, Any] | None) -> frozenset[str]:
    if args.supported_install_modes:
        return frozenset(m.strip() for m in args.supported_install_modes.split(",") if m.strip())
    if manifest is not None:
        return supported_install_modes_from_csv(manifest)
    msg = "one of --supported-install-modes or --csv-file is required"
    raise ValidationError(msg)


def _print_yaml(data: dict[str, Any]) -> None:
    sys.stdout.write(yaml.safe_dump(data, sort_keys=False))


def _build_install_params(args: Namespace, manifest: dict[str, Any] | None) -> InstallParams:
    from olminstall.installer import InstallParams

    starting_csv = args.starting_csv or ((manifest or {}).get("metadata") or {}).get("name")
    if not starting_csv:
        raise ValidationError("--starting-csv is required when --csv-file is not given")

    try:
        return InstallParams(
            package_name=args.package,
            channel=args.channel,
            starting_csv=starting_csv,
            catalog_name=args.catalog_name or f"{args.package}-catalog",
            supported_install_modes=_supported_modes(args, manifest),
            install_mode=InstallMode.parse(args.install_mode),
        )
    except PydanticValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        msg = f"invalid install parameters: {'; '.join(problems)}"
        raise ValidationError(msg, code="invalid_argument", details={"errors": problems}) from e


def run_install(args: Namespace, settings: Settings) -> int:
    """Install an operator and print the resulting CSV."""
    from olminstall.installer import Configuration, IndexImageCatalogCreator, OperatorInstaller
    from olminstall.kubernetes.store import KubernetesResourceStore, default_namespace
    from olminstall.observability.metrics import get_metrics, start_metrics_server

    manifest = _load_csv_manifest(args.csv_file) if args.csv_file else None
    params = _build_install_params(args, manifest)

    k8s_settings = settings.kubernetes.model_copy(
        update={
            key: value
            for key, value in {
                "kubeconfig": args.kubeconfig,
                "context": args.context,
                "namespace": args.namespace,
            }.items()
            if value is not None
        }
    )

    metrics = None
    if settings.observability.metrics_enabled:
        metrics = get_metrics()
        start_metrics_server(settings.observability.metrics_port)

    store = KubernetesResourceStore.from_settings(k8s_settings)
    try:
        cfg = Configuration(
            namespace=default_namespace(k8s_settings),
            store=store,
            settings=settings.install,
            metrics=metrics,
        )
        catalog_creator = IndexImageCatalogCreator(
            cfg, args.index_image or settings.install.default_index_image
        )
        installer = OperatorInstaller(cfg, catalog_creator)
        csv = asyncio.run(installer.install_operator(params, timeout=args.timeout))
    finally:
        store.close()

    _print_yaml(csv.to_summary())
    return 0


def run_resolve(args: Namespace, settings: Settings) -> int:
    """Print the target namespaces an install mode resolves to."""
    from olminstall.installer.install_mode import resolve

    manifest = _load_csv_manifest(args.csv_file) if args.csv_file else None
    namespace = args.namespace or settings.kubernetes.namespace or "default"
    supported = _supported_modes(args, manifest)
    targets = resolve(InstallMode.parse(args.install_mode), supported, namespace)
    _print_yaml(
        {
            "namespace": namespace,
            "supportedInstallModes": sorted(supported),
            "targetNamespaces": targets,
            "allNamespaces": not targets,
        }
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    settings = get_settings()
    configure_logging(
        level="DEBUG" if args.verbose else settings.observability.log_level,
        format_type=args.log_format or settings.observability.log_format,
    )

    command_handlers = {
        "install": run_install,
        "resolve": run_resolve,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args, settings)
    except InstallError as e:
        sys.stderr.write(e.to_json() + "\n")
        return 1
    except ConfigException as e:
        log.error("kubernetes_config_error", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
