"""
Error handling module for the overcommit webhook.

This module provides the error hierarchy shared by the admission path and the
start-up collaborators (certificates, registration, configuration).
"""

from .webhook_errors import (
    AdmissionDecodeError,
    CertificateError,
    ConfigurationError,
    PatchBuildError,
    PodDecodeError,
    QuantityError,
    RegistrationError,
    WebhookError,
)

__all__ = [
    "WebhookError",
    "ConfigurationError",
    "AdmissionDecodeError",
    "PodDecodeError",
    "QuantityError",
    "PatchBuildError",
    "CertificateError",
    "RegistrationError",
]
