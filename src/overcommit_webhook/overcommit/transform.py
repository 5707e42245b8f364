"""
Resource transform: shrink a declared request by an overcommit ratio.

A pure proportional scale-down (``original / ratio``) can collapse small
requests to zero or close to it, which starves CPU or gets a container
OOM-killed at start-up. The floors below encode a heuristic minimum viable
allocation; they are intentionally approximate.

The floors can raise a request above its declared value: any memory request
below 1Mi comes back as 1Mi under any ratio above 1.

All arithmetic is integer arithmetic in base units (milli-cores, bytes) with
truncating division. The ratio is the only float involved.
"""

from dataclasses import dataclass

from overcommit_webhook.constants import (
    CPU_ABSOLUTE_MIN_MILLI,
    CPU_MIN_MILLI,
    MEMORY_ABSOLUTE_MIN_BYTES,
    MEMORY_MIN_BYTES,
    REQUEST_FLOOR_DIVISOR,
)
from overcommit_webhook.overcommit.quantity import Quantity, ResourceKind


def adjust_cpu_milli(original: int, ratio: float) -> int:
    """
    Shrink a CPU request expressed in milli-cores.

    Floors, first match wins:
    - requests of at least 100m never drop below 100m
    - smaller requests keep at least a tenth of the original, and at least 1m

    Args:
        original: Declared request in milli-cores (positive)
        ratio: Overcommit ratio (greater than 1)

    Returns:
        Adjusted request in milli-cores
    """
    candidate = int(original / ratio)
    proportional_floor = max(
        CPU_ABSOLUTE_MIN_MILLI, original // REQUEST_FLOOR_DIVISOR
    )

    if candidate < CPU_MIN_MILLI and original >= CPU_MIN_MILLI:
        candidate = CPU_MIN_MILLI
    elif candidate < proportional_floor and original > 0:
        candidate = proportional_floor

    return candidate


def adjust_memory_bytes(original: int, ratio: float) -> int:
    """
    Shrink a memory request expressed in bytes.

    Floors, first match wins:
    - requests of at least 4Mi keep a tenth of the original (never below 4Mi)
    - requests of at least 4Mi never drop below 4Mi
    - smaller requests never drop below 1Mi

    Args:
        original: Declared request in bytes (positive)
        ratio: Overcommit ratio (greater than 1)

    Returns:
        Adjusted request in bytes
    """
    candidate = int(original / ratio)
    proportional_floor = original // REQUEST_FLOOR_DIVISOR

    if candidate < proportional_floor and original >= MEMORY_MIN_BYTES:
        candidate = max(proportional_floor, MEMORY_MIN_BYTES)
    elif candidate < MEMORY_MIN_BYTES and original >= MEMORY_MIN_BYTES:
        candidate = MEMORY_MIN_BYTES
    elif candidate < MEMORY_ABSOLUTE_MIN_BYTES and original > 0:
        candidate = MEMORY_ABSOLUTE_MIN_BYTES

    return candidate


_ADJUSTERS = {
    ResourceKind.CPU: adjust_cpu_milli,
    ResourceKind.MEMORY: adjust_memory_bytes,
}


def adjust(
    original: Quantity | None, ratio: float, kind: ResourceKind
) -> Quantity | None:
    """
    Compute the adjusted request for one resource.

    Args:
        original: Declared quantity, or None when the resource is not requested
        ratio: Overcommit ratio for this resource
        kind: Which resource the quantity belongs to

    Returns:
        None when nothing should be written for this resource (not requested,
        zero, or transformation disabled by a ratio <= 0). The original
        quantity when 0 < ratio <= 1. Otherwise the shrunk quantity.
    """
    if original is None or not original.is_positive() or ratio <= 0:
        return None
    if ratio <= 1:
        return original
    return original.with_value(_ADJUSTERS[kind](original.value, ratio))


@dataclass(frozen=True)
class OvercommitPolicy:
    """Immutable CPU and memory overcommit ratios."""

    cpu_ratio: float
    memory_ratio: float

    def ratio_for(self, kind: ResourceKind) -> float:
        if kind is ResourceKind.CPU:
            return self.cpu_ratio
        return self.memory_ratio

    def transform(self, original: Quantity, kind: ResourceKind) -> Quantity | None:
        """Adjust ``original`` with the ratio configured for ``kind``."""
        return adjust(original, self.ratio_for(kind), kind)
