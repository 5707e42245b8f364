"""
Kubernetes resource quantity parsing and formatting.

Quantities are held as integers in the base unit of their resource: milli-cores
for CPU and bytes for memory. Fractional amounts round up to the next base
unit, matching how Kubernetes reads ``MilliValue()`` and ``Value()``.

The format tag of the declared string is kept so that an adjusted quantity is
written back in the same family of suffixes:

- ``BinarySI``: ``Ki``, ``Mi``, ``Gi``, ``Ti``, ``Pi``, ``Ei``
- ``DecimalSI``: ``n``, ``u``, ``m``, ``k``, ``M``, ``G``, ``T``, ``P``, ``E``
- ``DecimalExponent``: ``1e3``, ``5E-3``
"""

import re
from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal, InvalidOperation
from enum import Enum

from overcommit_webhook.constants import RESOURCE_CPU, RESOURCE_MEMORY
from overcommit_webhook.errors import QuantityError

BINARY_SI = "BinarySI"
DECIMAL_SI = "DecimalSI"
DECIMAL_EXPONENT = "DecimalExponent"

_BINARY_SUFFIXES = {
    "Ki": 1,
    "Mi": 2,
    "Gi": 3,
    "Ti": 4,
    "Pi": 5,
    "Ei": 6,
}

_DECIMAL_SUFFIXES = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}

_DECIMAL_SUFFIX_BY_EXPONENT = {exp: suffix for suffix, exp in _DECIMAL_SUFFIXES.items()}
_BINARY_SUFFIX_BY_POWER = {power: suffix for suffix, power in _BINARY_SUFFIXES.items()}

_QUANTITY_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+))(.*)$")
_EXPONENT_RE = re.compile(r"^[eE]([+-]?\d+)$")


class ResourceKind(Enum):
    """Resource types the webhook knows how to adjust."""

    CPU = RESOURCE_CPU
    MEMORY = RESOURCE_MEMORY

    @property
    def base_exponent(self) -> int:
        """Decimal exponent of the base unit (milli for CPU, units for memory)."""
        return -3 if self is ResourceKind.CPU else 0


@dataclass(frozen=True)
class Quantity:
    """A resource amount in integer base units plus its declared format."""

    value: int
    format: str = DECIMAL_SI

    def is_positive(self) -> bool:
        return self.value > 0

    def with_value(self, value: int) -> "Quantity":
        """Return a quantity with the same format and a new amount."""
        return Quantity(value=value, format=self.format)


def parse_quantity(raw: str | int | float, kind: ResourceKind) -> Quantity:
    """
    Parse a Kubernetes quantity into base units of ``kind``.

    Args:
        raw: Quantity as found in a pod spec ("500m", "1.5", "128Mi", 2)
        kind: Resource the quantity belongs to

    Returns:
        Parsed quantity

    Raises:
        QuantityError: If the value is not a valid quantity
    """
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise QuantityError(raw, "quantity must be a string or number")

    if isinstance(raw, (int, float)):
        try:
            amount = Decimal(str(raw))
        except InvalidOperation as e:
            raise QuantityError(raw) from e
        if not amount.is_finite():
            raise QuantityError(raw)
        fmt = DECIMAL_SI
    else:
        amount, fmt = _parse_string(raw)

    scaled = amount.scaleb(-kind.base_exponent)
    value = int(scaled.to_integral_value(rounding=ROUND_CEILING))
    return Quantity(value=value, format=fmt)


def _parse_string(raw: str) -> tuple[Decimal, str]:
    match = _QUANTITY_RE.match(raw.strip())
    if not match:
        raise QuantityError(raw)

    number, suffix = match.groups()
    try:
        mantissa = Decimal(number)
    except InvalidOperation as e:
        raise QuantityError(raw) from e

    if suffix in _BINARY_SUFFIXES:
        return mantissa * (1024 ** _BINARY_SUFFIXES[suffix]), BINARY_SI
    if suffix in _DECIMAL_SUFFIXES:
        return mantissa.scaleb(_DECIMAL_SUFFIXES[suffix]), DECIMAL_SI

    exponent = _EXPONENT_RE.match(suffix)
    if exponent:
        return mantissa.scaleb(int(exponent.group(1))), DECIMAL_EXPONENT

    raise QuantityError(raw, "unknown quantity suffix")


def format_quantity(quantity: Quantity, kind: ResourceKind) -> str:
    """
    Render a quantity in canonical Kubernetes form.

    Binary quantities use the largest binary suffix that divides the amount
    exactly and fall back to decimal notation otherwise (amounts below 1Ki
    and fractional amounts are always decimal).

    Args:
        quantity: Quantity to render
        kind: Resource the quantity belongs to

    Returns:
        Canonical string such as "500m", "2", "10Mi" or "12800k"
    """
    if quantity.format == BINARY_SI:
        binary = _format_binary(quantity.value, kind.base_exponent)
        if binary is not None:
            return binary
        return _format_decimal(quantity.value, kind.base_exponent, DECIMAL_SI)
    return _format_decimal(quantity.value, kind.base_exponent, quantity.format)


def _format_binary(value: int, exponent: int) -> str | None:
    amount = Decimal(value).scaleb(exponent)
    if amount != amount.to_integral_value() or abs(amount) < 1024:
        return None

    number = int(amount)
    power = 0
    while power < max(_BINARY_SUFFIX_BY_POWER) and number % 1024 == 0:
        number //= 1024
        power += 1

    if power == 0:
        return str(number)
    return f"{number}{_BINARY_SUFFIX_BY_POWER[power]}"


def _format_decimal(value: int, exponent: int, fmt: str) -> str:
    if value == 0:
        return "0"

    mantissa = value
    while mantissa % 10 == 0:
        mantissa //= 10
        exponent += 1

    # Suffixes only exist for multiples of three
    exponent3 = (exponent // 3) * 3
    mantissa *= 10 ** (exponent - exponent3)
    if exponent3 > 18:
        mantissa *= 10 ** (exponent3 - 18)
        exponent3 = 18

    if fmt == DECIMAL_EXPONENT:
        return f"{mantissa}e{exponent3}" if exponent3 else str(mantissa)
    return f"{mantissa}{_DECIMAL_SUFFIX_BY_EXPONENT[exponent3]}"
