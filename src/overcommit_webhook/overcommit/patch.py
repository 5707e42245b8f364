"""
JSON patch construction for container resource requests.

Each container that needs a change gets exactly one ``add`` operation on
``/spec/containers/<index>/resources/requests``. The operation replaces the
whole requests object: any request the transform did not return a value for
(``ephemeral-storage``, extended resources, or a resource whose ratio
disables transformation) is dropped from that container by the patch.
"""

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from overcommit_webhook.constants import CONTAINER_REQUESTS_PATH, PATCH_OP_ADD
from overcommit_webhook.errors import QuantityError
from overcommit_webhook.models.pod import Container
from overcommit_webhook.overcommit.quantity import (
    Quantity,
    ResourceKind,
    format_quantity,
    parse_quantity,
)

logger = logging.getLogger(__name__)

Transform = Callable[[Quantity, ResourceKind], Quantity | None]

# Order of entries in the patch value, fixed for reproducible output
RESOURCE_ORDER = (ResourceKind.CPU, ResourceKind.MEMORY)


@dataclass(frozen=True)
class PatchOperation:
    """One RFC 6902 operation setting a container's resource requests."""

    path: str
    value: tuple[tuple[str, str], ...]
    op: str = PATCH_OP_ADD

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op, "path": self.path, "value": dict(self.value)}


def build_patch(
    containers: Sequence[Container], transform: Transform
) -> list[PatchOperation]:
    """
    Build the patch adjusting the requests of every container.

    Args:
        containers: Pod containers in declaration order
        transform: Adjusts one quantity, returning None for "write nothing"

    Returns:
        One operation per container whose requests changed, in container order
    """
    operations: list[PatchOperation] = []

    for index, container in enumerate(containers):
        requests = container.requests
        if not requests:
            continue

        try:
            value = _adjust_requests(container, requests, transform)
        except (QuantityError, ArithmeticError) as e:
            logger.warning(
                f"Skipping container [{container.name}] at index {index}: {e}",
                extra={"error_type": type(e).__name__},
            )
            continue

        if value is None:
            continue

        operations.append(
            PatchOperation(
                path=CONTAINER_REQUESTS_PATH.format(index=index),
                value=value,
            )
        )

    return operations


def _adjust_requests(
    container: Container, requests: dict[str, Any], transform: Transform
) -> tuple[tuple[str, str], ...] | None:
    entries: list[tuple[str, str]] = []
    changed = False

    for kind in RESOURCE_ORDER:
        raw = requests.get(kind.value)
        if raw is None:
            continue

        original = parse_quantity(raw, kind)
        adjusted = transform(original, kind)
        if adjusted is None:
            continue

        rendered = format_quantity(adjusted, kind)
        entries.append((kind.value, rendered))
        if adjusted.value != original.value:
            changed = True
            logger.info(
                f"Container [{container.name}] {kind.value} request: "
                f"{raw} -> {rendered}"
            )

    if not changed:
        return None
    return tuple(entries)


def encode_patch(operations: Sequence[PatchOperation]) -> bytes:
    """Serialize operations to compact JSON patch bytes."""
    return json.dumps(
        [operation.to_dict() for operation in operations], separators=(",", ":")
    ).encode("utf-8")
