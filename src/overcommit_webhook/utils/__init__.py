"""
Utility modules for the overcommit webhook.

This package contains the start-up collaborators:
- Self-signed serving certificate generation
- Kubernetes client setup and webhook registration
"""

from .certificates import CertificateGenerator, CertificatePaths
from .kubernetes import WebhookRegistrar, get_kubernetes_client

__all__ = [
    "CertificateGenerator",
    "CertificatePaths",
    "WebhookRegistrar",
    "get_kubernetes_client",
]
