from __future__ import annotations


class PricingInputError(ValueError):
    """Input rejected before any pricing work starts."""


class InvalidAddressData(PricingInputError):
    pass


class InvalidQuoteContext(PricingInputError):
    pass


class InvalidRuleDefinition(PricingInputError):
    pass


class CurrencyMismatchError(ValueError):
    def __init__(self, left: str, right: str):
        super().__init__(f"Cannot combine amounts in different currencies: {left} vs {right}")
        self.left = left
        self.right = right
