import pytest

from common.pricing_engine import constraints as c
from common.pricing_engine.errors import InvalidAddressData, InvalidQuoteContext
from common.pricing_engine.models import AddressData
from common.pricing_engine.money import Money
from common.pricing_engine.runner import PricingRunner, price_quote


@pytest.fixture
def catalog(make_rule):
    return [
        make_rule(c.FURNITURE_LIFT_REQUIRED, 200, name="Monte-meuble", category="equipment", priority=10),
        make_rule(c.DIFFICULT_STAIRS, 35, name="Escalier difficile", category="constraint"),
        make_rule(c.NARROW_CORRIDORS, 25, name="Couloirs étroits", category="constraint"),
        make_rule(c.HEAVY_ITEMS, 15, is_percentage=True, name="Objets lourds", category="constraint"),
        make_rule(c.DIFFICULT_PARKING, 40, name="Stationnement difficile", category="constraint"),
        make_rule(c.PACKING_SUPPLIES, 30, name="Fournitures", category="additional_service"),
        make_rule("minimum", 150, name="Prix minimum", category="minimum_price"),
    ]


def test_lift_at_fourth_floor_skips_subsumed_rules(catalog, make_quote, make_address):
    quote = make_quote(
        pickup=make_address(floor=4, constraints=[c.DIFFICULT_STAIRS, c.HEAVY_ITEMS]),
        delivery=make_address(floor=1),
    )
    result = PricingRunner(catalog).run(quote, Money("800"))

    assert result.lift_required
    assert "4" in result.lift_reason
    assert result.applied_rule_ids() == [c.FURNITURE_LIFT_REQUIRED]
    assert result.final_price == Money("1000.00")


def test_second_floor_constraint_applies_normally(catalog, make_quote, make_address):
    quote = make_quote(pickup=make_address(floor=2, constraints=[c.DIFFICULT_STAIRS]))
    result = PricingRunner(catalog).run(quote, Money("800"))

    assert not result.lift_required
    assert result.applied_rule_ids() == [c.DIFFICULT_STAIRS]
    assert result.pickup_costs.constraints_total == Money("35.00")
    assert result.final_price == Money("835.00")


def test_declared_constraint_consumed_by_lift_is_not_double_billed(catalog, make_quote, make_address):
    quote = make_quote(pickup=make_address(floor=6, elevator="small", constraints=[c.NARROW_CORRIDORS]))
    result = PricingRunner(catalog).run(quote, Money("800"))

    consumed = set(result.consumed_constraints)
    assert {c.NARROW_CORRIDORS} | (c.SUBSUMABLE_BY_LIFT - {c.NARROW_CORRIDORS}) <= consumed
    assert c.NARROW_CORRIDORS not in result.applied_rule_ids()
    assert c.NARROW_CORRIDORS in result.declared_constraints
    assert c.NARROW_CORRIDORS not in result.inferred_constraints


def test_same_constraint_at_both_addresses_is_billed_twice(catalog, make_quote, make_address):
    single = PricingRunner(catalog).run(
        make_quote(pickup=make_address(constraints=[c.DIFFICULT_PARKING])), Money("800")
    )
    dual = PricingRunner(catalog).run(
        make_quote(
            pickup=make_address(constraints=[c.DIFFICULT_PARKING]),
            delivery=make_address(constraints=[c.DIFFICULT_PARKING]),
        ),
        Money("800"),
    )
    assert dual.applied_rules[0].address == "both"
    assert dual.applied_rules[0].impact == single.applied_rules[0].impact.multiply(2)
    assert dual.pickup_costs.total == dual.delivery_costs.total == Money("40.00")


def test_minimum_price_raises_low_quotes(catalog, make_quote):
    result = PricingRunner(catalog).run(make_quote(), Money("90"))
    assert result.minimum_price_applied
    assert result.final_price == Money("150.00")


def test_run_is_deterministic(catalog, make_quote, make_address):
    quote = make_quote(
        pickup=make_address(floor=1, constraints=[c.HEAVY_ITEMS, c.DIFFICULT_PARKING]),
        delivery_services=[c.PACKING_SUPPLIES],
    )
    runner = PricingRunner(catalog)
    first = runner.run(quote, Money("640"))
    second = runner.run(quote, Money("640"))
    first_dump = first.model_dump(exclude={"inference_metadata"})
    assert first_dump == second.model_dump(exclude={"inference_metadata"})
    assert first.final_price == Money("806.00")


def test_partition_matches_final_price(catalog, make_quote, make_address):
    quote = make_quote(
        pickup=make_address(floor=1, constraints=[c.DIFFICULT_STAIRS]),
        delivery=make_address(floor=0, constraints=[c.DIFFICULT_PARKING]),
        global_services=[c.PACKING_SUPPLIES],
    )
    result = PricingRunner(catalog).run(quote, Money("700"))
    partition = result.pickup_costs.total + result.delivery_costs.total + result.global_costs.total
    assert result.base_price + partition == result.final_price
    assert result.delivery_costs.constraints_total == Money("40.00")
    assert result.global_costs.additional_services_total == Money("30.00")


def test_rejects_invalid_inputs(catalog, make_quote):
    runner = PricingRunner(catalog)
    with pytest.raises(InvalidQuoteContext):
        runner.run(make_quote(), Money("-1"))
    with pytest.raises(InvalidAddressData):
        runner.run(make_quote(pickup=AddressData.model_construct(floor=-2)), Money("100"))
    with pytest.raises(InvalidQuoteContext):
        runner.run({"pickup": {"elevator_class": "escalator"}}, Money("100"))


def test_price_quote_accepts_plain_values(make_rule):
    result = price_quote(
        [make_rule("packing_supplies", 10)],
        {"pickup": {"floor": 1}, "global_services": ["packing_supplies"]},
        "100",
    )
    assert result.final_price == Money("110.00")
    assert result.base_price.currency == "EUR"
