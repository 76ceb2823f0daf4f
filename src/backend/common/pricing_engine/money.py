from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from .errors import CurrencyMismatchError

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.1 keep their printed value instead of the binary expansion.
    return Decimal(str(value))


def round_amount(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """Immutable monetary amount.

    Addition and subtraction are exact. Multiplication always rounds half away from zero
    to the cent, so chained percentage rules cannot drift.
    """

    amount: Decimal
    currency: str = "EUR"

    def __post_init__(self):
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "currency", (self.currency or "EUR").upper())

    @classmethod
    def zero(cls, currency: str = "EUR") -> "Money":
        return cls(Decimal("0"), currency)

    def _check(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def add(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor: Number) -> "Money":
        return Money(round_amount(self.amount * to_decimal(factor)), self.currency)

    def percentage(self, pct: Number) -> "Money":
        return Money(round_amount(self.amount * to_decimal(pct) / HUNDRED), self.currency)

    def rounded(self) -> "Money":
        return Money(round_amount(self.amount), self.currency)

    def negate(self) -> "Money":
        return Money(-self.amount, self.currency)

    def abs(self) -> "Money":
        return Money(self.amount.copy_abs(), self.currency)

    def max(self, other: "Money") -> "Money":
        self._check(other)
        return self if self.amount >= other.amount else other

    def is_negative(self) -> bool:
        return self.amount < 0

    def is_zero(self) -> bool:
        return self.amount == 0

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return self.negate()

    def __lt__(self, other: "Money") -> bool:
        self._check(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._check(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._check(other)
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{round_amount(self.amount)} {self.currency}"


def sum_money(amounts, currency: str = "EUR") -> Money:
    total = Money.zero(currency)
    for amount in amounts:
        total = total + amount
    return total
