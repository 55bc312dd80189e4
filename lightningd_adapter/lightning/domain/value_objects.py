"""Domain value objects for the lightningd adapter.

Value Objects in DDD:
- Immutable (frozen dataclasses)
- No identity (equality based on attributes)
- Describe characteristics, not entities
"""

import re
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal, InvalidOperation
from typing import Union

from .enums import SatoshiCurrency

_AMOUNT_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")


@dataclass(frozen=True, order=True)
class BitcoinAmount:
    """Bitcoin amount held as an integer number of millisatoshis.

    lightningd reports amounts either as integers (``msatoshi``) or as
    strings with a unit suffix (``"1000msat"``); both parse here.
    """

    msat: int

    def __post_init__(self) -> None:
        if isinstance(self.msat, bool) or not isinstance(self.msat, int):
            raise TypeError(f"msat must be an int, got {type(self.msat).__name__}")

    @classmethod
    def zero(cls) -> "BitcoinAmount":
        return cls(0)

    @classmethod
    def from_native(cls, value: "AmountLike") -> "BitcoinAmount":
        """Parse ``1000``, ``"1000"``, ``"1000MSAT"``, ``"5sat"`` or ``"0.001BTC"``.

        Raises:
            ValueError: If the value is not a non-negative whole msat amount
        """
        if isinstance(value, BitcoinAmount):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid amount: {value!r}")
        if isinstance(value, int):
            if value < 0:
                raise ValueError(f"Amount cannot be negative, got {value}")
            return cls(value)
        if not isinstance(value, str):
            raise ValueError(f"Invalid amount: {value!r}")

        match = _AMOUNT_PATTERN.match(value)
        if not match:
            raise ValueError(f"Invalid amount: {value!r}")

        magnitude, unit = match.groups()
        try:
            currency = SatoshiCurrency(unit.upper()) if unit else SatoshiCurrency.MSAT
        except ValueError:
            raise ValueError(f"Unknown denomination in amount: {value!r}") from None

        try:
            msat = Decimal(magnitude) * currency.msat_factor
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}") from None
        if msat != msat.to_integral_value():
            raise ValueError(f"Amount is not a whole number of msat: {value!r}")
        return cls(int(msat))

    @property
    def sat(self) -> Decimal:
        """Amount in satoshis (may be fractional)."""
        return Decimal(self.msat) / SatoshiCurrency.SAT.msat_factor

    def to_currency(self, currency: SatoshiCurrency) -> Decimal:
        return Decimal(self.msat) / currency.msat_factor

    @property
    def is_zero(self) -> bool:
        return self.msat == 0

    def percentage(self, percent: Decimal | int | str, round_up: bool = True) -> "BitcoinAmount":
        """Return ``percent`` % of this amount, rounded to whole msat."""
        raw = Decimal(self.msat) * Decimal(str(percent)) / Decimal(100)
        rounding = ROUND_CEILING if round_up else ROUND_FLOOR
        return BitcoinAmount(int(raw.to_integral_value(rounding=rounding)))

    def __add__(self, other: "BitcoinAmount") -> "BitcoinAmount":
        if not isinstance(other, BitcoinAmount):
            return NotImplemented
        return BitcoinAmount(self.msat + other.msat)

    def __sub__(self, other: "BitcoinAmount") -> "BitcoinAmount":
        if not isinstance(other, BitcoinAmount):
            return NotImplemented
        return BitcoinAmount(self.msat - other.msat)

    def __str__(self) -> str:
        return f"{self.msat}{SatoshiCurrency.MSAT}"


AmountLike = Union[BitcoinAmount, int, str]


@dataclass(frozen=True)
class FeeLimit:
    """Maximum routing fee as a percentage of the payment amount."""

    percent: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.percent, Decimal):
            object.__setattr__(self, "percent", Decimal(str(self.percent)))
        if not Decimal(0) <= self.percent <= Decimal(100):
            raise ValueError(f"Fee limit must be between 0 and 100 percent, got {self.percent}")

    def format(self, decimals: int = 6) -> str:
        """Fixed-point rendering, e.g. ``"0.500000"`` for lightningd's maxfeepercent."""
        return f"{self.percent:.{decimals}f}"

    def __str__(self) -> str:
        return self.format()
