"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass
from decimal import Decimal

from shopcatalog.domain.exceptions import (
    InvalidAmountError,
    InvalidCurrencyError,
    NegativeMoneyError,
)


@dataclass(frozen=True)
class Money:
    """Represents monetary value with currency.

    Money is stored in the smallest currency unit (cents for USD/EUR)
    to avoid floating-point precision issues.

    Attributes:
        amount_cents: Amount in smallest currency unit (e.g., cents).
        currency: ISO 4217 currency code (e.g., 'USD', 'EUR').
    """

    amount_cents: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        """Validate money constraints.

        Raises:
            InvalidAmountError: If the amount is not an integer.
            NegativeMoneyError: If the amount is negative.
            InvalidCurrencyError: If the currency is not a three-letter code.
        """
        # bool is an int subclass
        if isinstance(self.amount_cents, bool) or not isinstance(self.amount_cents, int):
            raise InvalidAmountError(self.amount_cents)
        if self.amount_cents < 0:
            raise NegativeMoneyError(self.amount_cents)
        if not (
            isinstance(self.currency, str)
            and len(self.currency) == 3
            and self.currency.isascii()
            and self.currency.isalpha()
        ):
            raise InvalidCurrencyError(self.currency)
        # Normalize currency to uppercase
        object.__setattr__(self, "currency", self.currency.upper())

    def to_decimal(self) -> Decimal:
        """Convert to decimal amount in major units."""
        return Decimal(self.amount_cents) / 100

    def __str__(self) -> str:
        """Return formatted string representation.

        Returns:
            Formatted money string (e.g., '$12.99 USD').
        """
        symbol = {"USD": "$", "EUR": "€", "GBP": "£"}.get(self.currency, "")
        return f"{symbol}{self.to_decimal():.2f} {self.currency}"
