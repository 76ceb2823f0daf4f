import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from decimal import Decimal

import pytest

from common.pricing_engine.config import EngineConfig
from common.pricing_engine.context import ContextEnricher
from common.pricing_engine.models import AddressData, QuoteContext
from common.pricing_engine.money import Money
from common.pricing_engine.rule import Rule


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def make_address():
    def _make(
        *,
        floor: int = 0,
        elevator: str = "none",
        constraints=(),
        carry=None,
        unavailable: bool = False,
        unsuitable: bool = False,
        forbidden: bool = False,
    ) -> AddressData:
        return AddressData(
            floor=floor,
            elevator_class=elevator,
            elevator_unavailable=unavailable,
            elevator_unsuitable=unsuitable,
            elevator_forbidden=forbidden,
            carry_distance_band=carry,
            declared_constraint_ids=list(constraints),
        )

    return _make


@pytest.fixture
def make_quote(make_address):
    def _make(
        *,
        pickup: AddressData | None = None,
        delivery: AddressData | None = None,
        volume=None,
        pickup_services=(),
        delivery_services=(),
        global_services=(),
        global_constraints=(),
        scheduled_at=None,
    ) -> QuoteContext:
        return QuoteContext(
            pickup=pickup or make_address(),
            delivery=delivery or make_address(),
            volume=volume,
            pickup_services=list(pickup_services),
            delivery_services=list(delivery_services),
            global_services=list(global_services),
            global_constraints=list(global_constraints),
            scheduled_at=scheduled_at,
        )

    return _make


@pytest.fixture
def make_rule():
    def _make(rule_id: str, value, *, name: str | None = None, **kwargs) -> Rule:
        return Rule(id=rule_id, name=name or rule_id.replace("_", " ").title(), value=Decimal(str(value)), **kwargs)

    return _make


@pytest.fixture
def enrich(config):
    enricher = ContextEnricher(config)

    def _enrich(quote: QuoteContext):
        return enricher.enrich(quote)

    return _enrich


@pytest.fixture
def eur():
    def _money(amount) -> Money:
        return Money(Decimal(str(amount)), "EUR")

    return _money
