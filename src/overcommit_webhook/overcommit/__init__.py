"""
Overcommit engine - the pure parts of pod mutation.

Provides:
- Kubernetes quantity parsing and formatting
- The per-resource transform with its safety floors
- JSON patch construction for container requests
- Namespace scoping
"""

from .namespaces import in_scope
from .patch import PatchOperation, Transform, build_patch, encode_patch
from .quantity import Quantity, ResourceKind, format_quantity, parse_quantity
from .transform import OvercommitPolicy, adjust

__all__ = [
    "OvercommitPolicy",
    "PatchOperation",
    "Quantity",
    "ResourceKind",
    "Transform",
    "adjust",
    "build_patch",
    "encode_patch",
    "format_quantity",
    "in_scope",
    "parse_quantity",
]
