"""
Admission webhooks for the overcommit webhook.

This module provides the mutating admission webhook that rewrites container
resource requests of newly created pods. Reviews are served by the aiohttp
HTTPS server in ``overcommit_webhook.server``.
"""

from .mutate import AdmissionHandler, AdmissionState

__all__ = ["AdmissionHandler", "AdmissionState"]
