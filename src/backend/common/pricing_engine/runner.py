from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Union

from .aggregator import PriceAggregator
from .applier import RuleApplier
from .config import EngineConfig
from .context import ContextEnricher, coerce_quote
from .detection import validate_address_data
from .errors import InvalidQuoteContext
from .models import ExecutionResult, QuoteContext
from .money import Money, Number
from .registry import RuleSet
from .rule import Rule

logger = logging.getLogger(__name__)


class PricingRunner:
    """Runs one quote through enrich -> apply -> finalize.

    Holds only the immutable rule set and configuration; a single runner can serve concurrent
    callers.
    """

    def __init__(
        self,
        rules: Union[Iterable[Rule], RuleSet],
        config: Optional[EngineConfig] = None,
        *,
        final_submission: bool = True,
    ):
        self.config = config or EngineConfig()
        self.rules = RuleSet.coerce(rules)
        self.enricher = ContextEnricher(self.config, final_submission=final_submission)
        self.applier = RuleApplier(self.config)
        self.aggregator = PriceAggregator(self.config)

    def _base_price(self, base_price: Union[Money, Number]) -> Money:
        if not isinstance(base_price, Money):
            base_price = Money(base_price, self.config.currency)
        if base_price.is_negative():
            raise InvalidQuoteContext(f"Base price cannot be negative (got {base_price})")
        return base_price

    def run(
        self,
        quote: Union[QuoteContext, Mapping[str, Any]],
        base_price: Union[Money, Number],
    ) -> ExecutionResult:
        quote = coerce_quote(quote)
        validate_address_data(quote.pickup)
        validate_address_data(quote.delivery)
        base = self._base_price(base_price)

        enriched = self.enricher.enrich(quote, self.rules)
        outcomes = self.applier.apply(self.rules, enriched, base)
        result = self.aggregator.finalize(base, outcomes, enriched=enriched, rules_evaluated=len(self.rules))

        logger.info(
            "Priced quote: base=%s final=%s applied=%d/%d lift=%s consumed=%d",
            result.base_price,
            result.final_price,
            result.total_rules_applied,
            result.total_rules_evaluated,
            result.lift_required,
            len(result.consumed_constraints),
        )
        return result


def price_quote(
    rules: Union[Iterable[Rule], RuleSet],
    quote: Union[QuoteContext, Mapping[str, Any]],
    base_price: Union[Money, Number],
    config: Optional[EngineConfig] = None,
) -> ExecutionResult:
    return PricingRunner(rules, config).run(quote, base_price)
