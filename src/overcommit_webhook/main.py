#!/usr/bin/env python3
"""
Overcommit Webhook - main entry point.

Start-up sequence:
1. Load settings from the environment, then apply command-line overrides
2. Configure logging and tracing
3. Generate the self-signed serving certificate
4. Register the MutatingWebhookConfiguration (best effort)
5. Serve admission reviews over HTTPS and metrics over HTTP until stopped

Usage:
    python -m overcommit_webhook --cpu-ratio 2 --mem-ratio 1.5
    overcommit-webhook --target-namespaces team-a,team-b

Environment Variables:
    CPU_OVERCOMMIT_RATIO: CPU overcommit ratio (default 1.5)
    MEMORY_OVERCOMMIT_RATIO: Memory overcommit ratio (default 1.5)
    TARGET_NAMESPACES: Comma-separated namespaces to mutate (default: all)
    POD_NAMESPACE: Namespace the webhook runs in
"""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from kubernetes import config as kube_config
from pydantic import ValidationError

from overcommit_webhook.constants import CERT_FILE_NAME, KEY_FILE_NAME
from overcommit_webhook.errors import (
    CertificateError,
    ConfigurationError,
    RegistrationError,
)
from overcommit_webhook.observability.logging import setup_structured_logging
from overcommit_webhook.observability.metrics import MetricsServer
from overcommit_webhook.observability.tracing import setup_tracing, shutdown_tracing
from overcommit_webhook.server import WebhookServer
from overcommit_webhook.settings import Settings
from overcommit_webhook.settings import settings as webhook_settings
from overcommit_webhook.utils.certificates import CertificateGenerator, CertificatePaths
from overcommit_webhook.utils.kubernetes import WebhookRegistrar, get_kubernetes_client
from overcommit_webhook.webhooks.mutate import AdmissionHandler

# Flag name -> settings field
_FLAG_FIELDS = {
    "cpu_ratio": "cpu_overcommit_ratio",
    "mem_ratio": "memory_overcommit_ratio",
    "port": "port",
    "cert_dir": "cert_dir",
    "service_name": "service_name",
    "target_namespaces": "target_namespaces",
}


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags; unset flags keep their environment value."""
    parser = argparse.ArgumentParser(
        prog="overcommit-webhook",
        description="Mutating admission webhook enforcing CPU/memory overcommit ratios",
    )
    parser.add_argument("--cpu-ratio", type=float, help="CPU overcommit ratio")
    parser.add_argument("--mem-ratio", type=float, help="Memory overcommit ratio")
    parser.add_argument("--port", type=int, help="HTTPS listen port")
    parser.add_argument("--cert-dir", help="Directory for tls.crt and tls.key")
    parser.add_argument("--service-name", help="Name of the webhook Service")
    parser.add_argument(
        "--target-namespaces",
        help="Comma-separated namespaces to mutate; empty mutates all namespaces",
    )
    return parser.parse_args(argv)


def apply_overrides(base: Settings, args: argparse.Namespace) -> Settings:
    """
    Return settings with command-line flags applied on top of ``base``.

    Raises:
        ConfigurationError: If an override is invalid
    """
    updates = {
        field: getattr(args, flag)
        for flag, field in _FLAG_FIELDS.items()
        if getattr(args, flag) is not None
    }
    if not updates:
        return base
    try:
        return Settings(**{**base.model_dump(), **updates})
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid command-line flags: {e}",
            user_action="Run with --help to see accepted flags",
        ) from e


def configure_logging(cfg: Settings) -> None:
    """Configure structured logging for the webhook based on settings."""
    setup_structured_logging(
        log_level=cfg.log_level.upper(),
        enable_json_formatting=cfg.json_logs,
        correlation_id_enabled=cfg.correlation_ids,
        log_health_checks=cfg.log_health_checks,
    )


def prepare_certificates(cfg: Settings) -> CertificatePaths:
    """
    Generate the serving certificate, or locate a mounted one.

    Raises:
        CertificateError: If no usable certificate is available
    """
    if cfg.generate_certificates:
        return CertificateGenerator(
            cert_dir=cfg.cert_dir,
            service_name=cfg.service_name,
            namespace=cfg.pod_namespace,
        ).generate()

    paths = CertificatePaths(
        certfile=Path(cfg.cert_dir) / CERT_FILE_NAME,
        keyfile=Path(cfg.cert_dir) / KEY_FILE_NAME,
    )
    for path in (paths.certfile, paths.keyfile):
        if not path.is_file():
            raise CertificateError(f"Certificate file {path} does not exist")
    logging.info(f"Using mounted serving certificate from {cfg.cert_dir}")
    return paths


def register_webhook(cfg: Settings, ca_file: Path) -> bool:
    """
    Register the webhook with the API server.

    Failures are logged and do not stop start-up: the configuration may be
    managed elsewhere, and an unregistered webhook simply receives no reviews.

    Returns:
        True if the configuration was created or updated
    """
    if not cfg.register_webhook:
        logging.info("Webhook registration disabled")
        return False

    try:
        registrar = WebhookRegistrar(
            api_client=get_kubernetes_client(),
            configuration_name=cfg.webhook_configuration_name,
            webhook_name=cfg.webhook_name,
            service_name=cfg.service_name,
            namespace=cfg.pod_namespace,
            ca_file=ca_file,
        )
        registrar.register()
    except (RegistrationError, kube_config.ConfigException) as e:
        logging.warning(f"Failed to register MutatingWebhook, continuing: {e}")
        return False

    logging.info("Registered MutatingWebhook")
    return True


async def serve(cfg: Settings, certificates: CertificatePaths) -> None:
    """Run the webhook and metrics servers until SIGINT or SIGTERM."""
    handler = AdmissionHandler(
        policy=cfg.overcommit_policy(),
        target_namespaces=cfg.watched_namespaces,
    )
    webhook_server = WebhookServer(
        handler,
        host=cfg.host,
        port=cfg.port,
        certfile=str(certificates.certfile),
        keyfile=str(certificates.keyfile),
    )
    metrics_server = MetricsServer(
        port=cfg.metrics_port,
        host=cfg.metrics_host,
        readiness_check=lambda: webhook_server.running,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await metrics_server.start()
    except OSError as e:
        # Metrics are not required to answer admission reviews
        logging.error(f"Failed to start metrics server: {e}")
        logging.warning("Continuing without metrics server")

    async with webhook_server:
        logging.info(
            f"Overcommit webhook started: CPU ratio {cfg.cpu_overcommit_ratio:.2f}, "
            f"memory ratio {cfg.memory_overcommit_ratio:.2f}"
        )
        if cfg.watched_namespaces:
            logging.info(f"Mutating pods in namespaces: {', '.join(cfg.watched_namespaces)}")
        else:
            logging.info("Mutating pods in all namespaces")
        await stop.wait()
        logging.info("Received shutdown signal")

    await metrics_server.stop()


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for the webhook."""
    try:
        cfg = apply_overrides(webhook_settings, parse_args(argv))
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    configure_logging(cfg)
    setup_tracing(
        enabled=cfg.tracing_enabled,
        endpoint=cfg.otel_endpoint,
        sample_rate=cfg.tracing_sample_rate,
    )

    try:
        certificates = prepare_certificates(cfg)
    except CertificateError as e:
        logging.error(f"Failed to prepare serving certificate: {e}")
        sys.exit(1)

    register_webhook(cfg, certificates.certfile)

    try:
        asyncio.run(serve(cfg, certificates))
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
    except Exception as e:
        logging.error(f"Webhook failed with error: {e}")
        sys.exit(1)
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    main()
