import logging

from common.pricing_engine import constraints as c
from common.pricing_engine.applier import RuleApplier, resolve_address_scope
from common.pricing_engine.money import Money
from common.pricing_engine.rule import Rule


def test_scope_from_name_keywords(make_quote, make_rule, enrich, config):
    ctx = enrich(make_quote())
    assert resolve_address_scope(make_rule("p", 10, name="Portage départ"), ctx, config).address == "pickup"
    assert resolve_address_scope(make_rule("d", 10, name="Delivery fee"), ctx, config).address == "delivery"
    # Both keyword families present: fall through to later tiers.
    resolution = resolve_address_scope(make_rule("x", 10, name="Pickup and delivery"), ctx, config)
    assert resolution.address == "none"
    assert resolution.tier == "default"


def test_scope_from_identity(make_quote, make_address, make_rule, enrich, config):
    ctx = enrich(
        make_quote(
            pickup=make_address(constraints=[c.DIFFICULT_PARKING]),
            delivery=make_address(constraints=[c.DIFFICULT_PARKING, c.NARROW_CORRIDORS]),
        )
    )
    both = resolve_address_scope(make_rule(c.DIFFICULT_PARKING, 50, name="Parking"), ctx, config)
    assert (both.address, both.tier) == ("both", "identity")
    single = resolve_address_scope(
        make_rule("corridor_fee", 20, name="Corridors", condition={"type": "building", "corridors": "narrow"}),
        ctx,
        config,
    )
    assert (single.address, single.tier) == ("delivery", "identity")


def test_scope_from_condition_hint_then_declared_scope(make_quote, make_rule, enrich, config):
    ctx = enrich(make_quote())
    hinted = make_rule("pack", 80, name="Packing", condition={"type": "service", "packing": "arrival"})
    assert resolve_address_scope(hinted, ctx, config).tier == "condition"
    assert resolve_address_scope(hinted, ctx, config).address == "delivery"

    declared = make_rule("fee", 15, name="Fee", scope="pickup")
    assert (resolve_address_scope(declared, ctx, config).address, resolve_address_scope(declared, ctx, config).tier) == (
        "pickup",
        "declared",
    )


def test_lift_consumed_rules_are_skipped_but_lift_rule_applies(make_quote, make_address, make_rule, enrich, config):
    ctx = enrich(make_quote(pickup=make_address(floor=6, elevator="small", constraints=[c.NARROW_CORRIDORS])))
    rules = [
        make_rule(c.FURNITURE_LIFT_REQUIRED, 200, name="Monte-meuble", priority=1),
        make_rule(c.NARROW_CORRIDORS, 40, name="Couloirs"),
        make_rule("stairs_fee", 30, name="Stairs", condition={"type": "building", "stairs": "difficult"}),
    ]
    applier = RuleApplier(config)
    skip, reason = applier.should_skip(rules[1], ctx)
    assert skip
    assert "declared" in reason
    skip, reason = applier.should_skip(rules[2], ctx)
    assert skip
    assert "inferred" in reason

    outcomes = applier.apply(rules, ctx, Money("1000"))
    assert [o.rule.id for o in outcomes] == [c.FURNITURE_LIFT_REQUIRED]
    assert outcomes[0].address == "pickup"
    assert outcomes[0].price_after == Money("1200.00")


def test_nothing_skipped_without_lift(make_quote, make_address, make_rule, enrich, config):
    ctx = enrich(make_quote(pickup=make_address(floor=2, constraints=[c.DIFFICULT_STAIRS])))
    outcomes = RuleApplier(config).apply(
        [make_rule(c.DIFFICULT_STAIRS, 35, name="Escalier difficile")], ctx, Money("500")
    )
    assert len(outcomes) == 1
    assert outcomes[0].impact == Money("35.00")


def test_percentages_compound_on_running_price(make_quote, make_rule, enrich, config):
    ctx = enrich(make_quote(global_services=["insurance_plus", "boxes"]))
    rules = [
        make_rule("insurance_plus", 10, is_percentage=True, priority=1),
        make_rule("boxes", 10, is_percentage=True, priority=2),
    ]
    outcomes = RuleApplier(config).apply(rules, ctx, Money("100"))
    assert [o.impact for o in outcomes] == [Money("10.00"), Money("11.00")]
    assert outcomes[-1].price_after == Money("121.00")


def test_both_scope_doubles_impact(make_quote, make_address, make_rule, enrich, config):
    rule = make_rule(c.LIMITED_PARKING, 25, name="Parking")
    single = enrich(make_quote(pickup=make_address(constraints=[c.LIMITED_PARKING])))
    dual = enrich(
        make_quote(
            pickup=make_address(constraints=[c.LIMITED_PARKING]),
            delivery=make_address(constraints=[c.LIMITED_PARKING]),
        )
    )
    applier = RuleApplier(config)
    one = applier.apply([rule], single, Money("300"))[0]
    two = applier.apply([rule], dual, Money("300"))[0]
    assert two.address == "both"
    assert two.impact == one.impact.multiply(2)
    assert two.original_impact == one.impact


def test_failing_rule_is_logged_and_skipped(make_quote, make_rule, enrich, config, caplog):
    def explode(_ctx):
        raise RuntimeError("boom")

    ctx = enrich(make_quote(global_services=["ok"]))
    rules = [
        Rule(id="broken", name="Broken", value=5, applicability=explode, priority=1),
        make_rule("ok", 12, priority=2),
    ]
    with caplog.at_level(logging.ERROR, logger="common.pricing_engine.applier"):
        outcomes = RuleApplier(config).apply(rules, ctx, Money("100"))
    assert [o.rule.id for o in outcomes] == ["ok"]
    assert "broken" in caplog.text


def test_minimum_price_outcome_does_not_move_running_price(make_quote, make_rule, enrich, config):
    ctx = enrich(make_quote())
    outcomes = RuleApplier(config).apply(
        [make_rule("min", 400, name="Minimum", category="minimum_price")], ctx, Money("100")
    )
    assert outcomes[0].is_minimum_price
    assert outcomes[0].price_after == Money("100.00")
    assert outcomes[0].minimum_price == Money("400.00")


def test_name_keywords_match_whole_words_only(make_quote, make_address, make_rule, enrich, config):
    ctx = enrich(
        make_quote(
            pickup=make_address(constraints=["unload"]),
            delivery=make_address(constraints=["unload"]),
        )
    )
    # "chargement" is a pickup keyword; "déchargement" must not hit it.
    resolution = resolve_address_scope(make_rule("unload", 30, name="Frais de déchargement"), ctx, config)
    assert (resolution.address, resolution.tier) == ("both", "identity")

    delivery_only = enrich(make_quote(delivery=make_address(constraints=["unload"])))
    resolution = resolve_address_scope(make_rule("unload", 30, name="Frais de déchargement"), delivery_only, config)
    assert resolution.address == "delivery"

    original = resolve_address_scope(make_rule("x", 10, name="Original packing"), enrich(make_quote()), config)
    assert original.tier == "default"
    loading = resolve_address_scope(make_rule("y", 10, name="Frais de chargement"), enrich(make_quote()), config)
    assert (loading.address, loading.tier) == ("pickup", "name")
