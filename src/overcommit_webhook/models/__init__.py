"""
Models package - Pydantic models for the admission wire format.

Defines data models for:
- AdmissionReview request and response envelopes
- The subset of a Pod the webhook reads
"""

from .admission import (
    AdmissionRequest,
    AdmissionResponse,
    AdmissionReview,
    AdmissionReviewResponse,
)
from .pod import Container, ObjectMeta, Pod, PodSpec, ResourceRequirements

__all__ = [
    "AdmissionRequest",
    "AdmissionResponse",
    "AdmissionReview",
    "AdmissionReviewResponse",
    "Container",
    "ObjectMeta",
    "Pod",
    "PodSpec",
    "ResourceRequirements",
]
