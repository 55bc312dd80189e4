"""Money parsing and denomination conversion.

The RPC client depends only on the ``MoneyService`` contract; the default
``SatoshiMoneyService`` covers the Bitcoin denominations lightningd uses.
"""

from abc import ABC, abstractmethod
from decimal import ROUND_FLOOR

from ..domain.enums import SatoshiCurrency
from ..domain.value_objects import AmountLike, BitcoinAmount


class MoneyService(ABC):
    """Abstract money service used by the RPC client."""

    @abstractmethod
    def parse(self, amount: AmountLike) -> BitcoinAmount:
        """Parse an amount string such as ``"5000MSAT"``."""

    @abstractmethod
    def convert(
        self, amount: BitcoinAmount, currency: SatoshiCurrency = SatoshiCurrency.MSAT
    ) -> BitcoinAmount:
        """Express ``amount`` in ``currency``, rounding to what it can represent."""

    def to_msat(self, amount: AmountLike) -> BitcoinAmount:
        """Parse and normalize to millisatoshis in one step."""
        return self.convert(self.parse(amount), SatoshiCurrency.MSAT)


class SatoshiMoneyService(MoneyService):
    """Money service for MSAT/SAT/BTC amounts."""

    def parse(self, amount: AmountLike) -> BitcoinAmount:
        return BitcoinAmount.from_native(amount)

    def convert(
        self, amount: BitcoinAmount, currency: SatoshiCurrency = SatoshiCurrency.MSAT
    ) -> BitcoinAmount:
        # Denominations coarser than msat truncate to a whole unit.
        units = amount.to_currency(currency).to_integral_value(rounding=ROUND_FLOOR)
        return BitcoinAmount(int(units * currency.msat_factor))
