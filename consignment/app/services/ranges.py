"""Money ranges and safe ratio helpers.

Item costs and sales prices are stored as ``[min, max]`` ranges, so every
metric derived from them is a range too. Exact amounts (payments, payouts,
expenses) stay plain ``Decimal`` values.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")


class ProfitBound(str, enum.Enum):
    """Which single value to use when a range must become one number."""

    MIN = "min"
    MID = "mid"
    MAX = "max"


@dataclass(frozen=True)
class MoneyRange:
    min: Decimal
    max: Decimal

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"Inverted money range: ({self.min}, {self.max})")

    @classmethod
    def point(cls, value: Decimal) -> MoneyRange:
        return cls(value, value)

    @classmethod
    def zero(cls) -> MoneyRange:
        return cls(ZERO, ZERO)

    @classmethod
    def from_bounds(cls, low: Decimal | None, high: Decimal | None) -> MoneyRange:
        """Build a range from nullable stored bounds.

        A missing bound takes the value of the other one; both missing is
        ``(0, 0)``.
        """
        if low is None and high is None:
            return cls.zero()
        if low is None:
            low = high
        if high is None:
            high = low
        return cls(Decimal(str(low)), Decimal(str(high)))

    def add(self, other: MoneyRange) -> MoneyRange:
        return MoneyRange(self.min + other.min, self.max + other.max)

    def subtract(self, other: MoneyRange) -> MoneyRange:
        """Bound-wise difference ``(a.min - b.min, a.max - b.max)``.

        Meaningful when ``other`` is an exact amount (e.g. cost owed minus
        what was already paid). The result may be negative.
        """
        return MoneyRange(self.min - other.min, self.max - other.max)

    def negated(self) -> MoneyRange:
        return MoneyRange(-self.max, -self.min)

    def clamp_non_negative(self) -> MoneyRange:
        """Clamp each bound at zero independently (remaining balances)."""
        return MoneyRange(max(ZERO, self.min), max(ZERO, self.max))

    def divide(self, n: int | Decimal) -> MoneyRange:
        if n == 0:
            return MoneyRange.zero()
        d = Decimal(n)
        lo, hi = self.min / d, self.max / d
        return MoneyRange(min(lo, hi), max(lo, hi))

    @property
    def midpoint(self) -> Decimal:
        return (self.min + self.max) / 2

    def resolve(self, bound: ProfitBound = ProfitBound.MID) -> Decimal:
        if bound == ProfitBound.MIN:
            return self.min
        if bound == ProfitBound.MAX:
            return self.max
        return self.midpoint

    def to_dict(self) -> dict[str, str]:
        return {"min": money(self.min), "max": money(self.max)}


def sum_ranges(ranges: Iterable[MoneyRange]) -> MoneyRange:
    total = MoneyRange.zero()
    for r in ranges:
        total = total.add(r)
    return total


def profit_range(
    revenue: Decimal, cost: MoneyRange, expenses: Decimal = ZERO,
) -> MoneyRange:
    """Revenue minus cost minus expenses.

    The low bound charges the vendor's maximum cost, the high bound the
    minimum cost.
    """
    return MoneyRange.point(revenue - expenses).add(cost.negated())


def safe_divide(
    numerator: Decimal, denominator: Decimal | int, fallback: Decimal = ZERO,
) -> Decimal:
    """Ratio that resolves to *fallback* instead of failing on a zero denominator."""
    if denominator == 0:
        return fallback
    return Decimal(numerator) / Decimal(denominator)


def percentage_change(current: Decimal, previous: Decimal) -> Decimal:
    """``(current - previous) / previous * 100``; 0 when there is no baseline."""
    return safe_divide(current - previous, previous) * HUNDRED


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    return safe_divide(part, whole) * HUNDRED


def quantize(value: Decimal) -> Decimal:
    q = Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    # no "-0.00" in output
    return abs(q) if q.is_zero() else q


def money(value: Decimal) -> str:
    """Two-decimal string form used in every serialized report."""
    return str(quantize(value))
