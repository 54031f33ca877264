"""Deterministic decimal arithmetic for yield formulas.

Every forward-yield formula in this project runs on `Dec`, a thin value type
over `decimal.Decimal` evaluated in a fixed 60-digit context. Native floats are
only produced at the very end (`Dec.to_float`) when output records are built.

Division by zero does not raise: it yields `Dec(0)`. Pool supplies, working
supplies and prices are routinely zero on freshly deployed or drained gauges
and the formulas are expected to degrade to a zero yield in that case.
"""

from __future__ import annotations

from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Union

_CONTEXT = Context(prec=60, rounding=ROUND_HALF_EVEN)

Operand = Union["Dec", Decimal, int, float, str]


def _to_decimal(value: Operand) -> Decimal:
    if isinstance(value, Dec):
        return value.value
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr() gives the shortest round-tripping literal, so 0.4 stays 0.4.
        return Decimal(repr(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return Decimal(0)
        return Decimal(text)
    raise TypeError(f"unsupported operand for Dec: {type(value).__name__}")


class Dec:
    """Immutable arbitrary-precision decimal."""

    __slots__ = ("value",)

    def __init__(self, value: Operand = 0) -> None:
        object.__setattr__(self, "value", _to_decimal(value))

    def __setattr__(self, name, value):  # pragma: no cover - immutability guard
        raise AttributeError("Dec is immutable")

    # -- constructors -----------------------------------------------------

    @classmethod
    def from_scaled(cls, raw: int | str | None, decimals: int) -> "Dec":
        """Build from a scaled integer, e.g. `from_scaled(10**18, 18) == Dec(1)`."""
        if raw is None:
            return cls(0)
        scale = _CONTEXT.power(Decimal(10), Decimal(int(decimals)))
        return cls(_CONTEXT.divide(_to_decimal(int(raw)), scale))

    @classmethod
    def from_float(cls, value: float | None) -> "Dec":
        if value is None:
            return cls(0)
        return cls(float(value))

    # -- arithmetic -------------------------------------------------------

    def __add__(self, other: Operand) -> "Dec":
        return Dec(_CONTEXT.add(self.value, _to_decimal(other)))

    def __radd__(self, other: Operand) -> "Dec":
        return Dec(_CONTEXT.add(_to_decimal(other), self.value))

    def __sub__(self, other: Operand) -> "Dec":
        return Dec(_CONTEXT.subtract(self.value, _to_decimal(other)))

    def __rsub__(self, other: Operand) -> "Dec":
        return Dec(_CONTEXT.subtract(_to_decimal(other), self.value))

    def __mul__(self, other: Operand) -> "Dec":
        return Dec(_CONTEXT.multiply(self.value, _to_decimal(other)))

    def __rmul__(self, other: Operand) -> "Dec":
        return Dec(_CONTEXT.multiply(_to_decimal(other), self.value))

    def __truediv__(self, other: Operand) -> "Dec":
        divisor = _to_decimal(other)
        if divisor.is_zero():
            return Dec(0)
        return Dec(_CONTEXT.divide(self.value, divisor))

    def __rtruediv__(self, other: Operand) -> "Dec":
        return Dec(other) / self

    def __pow__(self, exponent: Operand) -> "Dec":
        exp = _to_decimal(exponent)
        try:
            return Dec(_CONTEXT.power(self.value, exp))
        except InvalidOperation:
            # Negative base with a fractional exponent has no real result.
            return Dec(0)

    def __neg__(self) -> "Dec":
        return Dec(_CONTEXT.minus(self.value))

    # -- comparisons ------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        try:
            return self.value == _to_decimal(other)  # type: ignore[arg-type]
        except TypeError:
            return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __lt__(self, other: Operand) -> bool:
        return self.value < _to_decimal(other)

    def __le__(self, other: Operand) -> bool:
        return self.value <= _to_decimal(other)

    def __gt__(self, other: Operand) -> bool:
        return self.value > _to_decimal(other)

    def __ge__(self, other: Operand) -> bool:
        return self.value >= _to_decimal(other)

    def is_zero(self) -> bool:
        return self.value.is_zero()

    def is_positive(self) -> bool:
        return self.value > 0

    # -- conversions ------------------------------------------------------

    def to_float(self) -> float:
        return float(self.value)

    def __float__(self) -> float:
        return self.to_float()

    def __repr__(self) -> str:
        return f"Dec('{self.value}')"

    def __str__(self) -> str:
        return str(self.value)


ZERO = Dec(0)
ONE = Dec(1)


def normalize(raw: int | str | None, decimals: int) -> Dec:
    """Convert an on-chain scaled integer into a decimal ratio.

    Fee and keep fields are basis points, i.e. `normalize(bps, 4)`.
    """
    return Dec.from_scaled(raw, decimals)


def convert_apr_to_apy(apr: Dec, periods_per_year: Operand) -> Dec:
    """APY = (1 + apr / n) ** n - 1."""
    n = Dec(periods_per_year)
    return (ONE + apr / n) ** n - ONE
