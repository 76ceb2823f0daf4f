import json
from pathlib import Path

from common.pricing_engine import constraints as c
from common.pricing_engine.models import AppliedRuleType
from common.pricing_engine.money import Money
from scripts.run_quote_pricing import (
    build_fixture_pricing_inputs,
    main,
    run_quote_pricing_from_inputs,
)


FIXTURES = Path(__file__).parent / "fixtures" / "sample"


def test_fixture_bundle_builds_inputs():
    inputs = build_fixture_pricing_inputs(FIXTURES)
    assert len(inputs.rules) == 6
    assert inputs.base_price == "1000.00"
    assert inputs.quote.pickup.floor == 5


def test_fixture_quote_prices_deterministically():
    result = run_quote_pricing_from_inputs(build_fixture_pricing_inputs(FIXTURES))

    assert result.lift_required
    assert result.applied_rule_ids() == [
        c.FURNITURE_LIFT_REQUIRED,
        "limited_parking",
        "packing_departure",
        "weekend",
    ]
    assert result.final_price == Money("1540.00")
    assert not result.minimum_price_applied

    by_id = {detail.rule_id: detail for detail in result.applied_rules}
    assert by_id["limited_parking"].address == "both"
    assert by_id["packing_departure"].address == "pickup"
    assert by_id["weekend"].category == AppliedRuleType.TEMPORAL

    assert result.pickup_costs.total == Money("360.00")
    assert result.delivery_costs.total == Money("40.00")
    assert result.global_costs.temporal_total == Money("140.00")
    assert c.DIFFICULT_STAIRS in result.consumed_constraints
    assert c.LIMITED_PARKING in result.declared_constraints


def test_cli_writes_json_and_markdown(tmp_path, capsys):
    assert main(["--fixtures-dir", str(FIXTURES), "--output-dir", str(tmp_path)]) == 0

    payload = json.loads((tmp_path / "pricing_result.json").read_text(encoding="utf-8"))
    assert payload["final_price"]["amount"] == "1540.00"
    assert payload["lift_required"] is True

    markdown = (tmp_path / "pricing_result.md").read_text(encoding="utf-8")
    assert "Final price: 1540.00 EUR" in markdown
    assert "difficult_stairs (declared)" in markdown
    assert "Wrote" in capsys.readouterr().out
