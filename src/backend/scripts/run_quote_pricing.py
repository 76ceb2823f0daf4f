from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path


def _ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


def _load_json(path: Path):
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def _format_detail(detail) -> str:
    sign = "+" if not detail.impact.is_negative() else ""
    return f"{detail.name} [{detail.address}] {sign}{detail.impact}"


def _write_markdown(result, out_path: Path) -> None:
    lines = [
        "# Quote Pricing",
        "",
        f"- Base price: {result.base_price}",
        f"- Final price: {result.final_price}",
        f"- Surcharges: {result.total_surcharges}",
        f"- Reductions: {result.total_reductions}",
        f"- Rules applied: {result.total_rules_applied}/{result.total_rules_evaluated}",
    ]
    if result.minimum_price_applied:
        lines.append(f"- Minimum price applied: {result.minimum_price_amount}")
    if result.lift_required:
        lines.append(f"- Furniture lift: {result.lift_reason}")

    sections = (
        ("Constraints", result.constraints),
        ("Additional services", result.additional_services),
        ("Equipment", result.equipment),
        ("Temporal", result.temporal_rules),
        ("Reductions", result.reductions),
    )
    for title, details in sections:
        if not details:
            continue
        lines.append("")
        lines.append(f"## {title}")
        for detail in details:
            lines.append(f"- {_format_detail(detail)}")

    lines.append("")
    lines.append("## Costs by address")
    for label, costs in (
        ("Pickup", result.pickup_costs),
        ("Delivery", result.delivery_costs),
        ("Global", result.global_costs),
    ):
        lines.append(f"- {label}: {costs.total}")
    global_costs = result.global_costs
    if global_costs.adjustment_reason:
        lines.append(f"- Global adjustment ({global_costs.adjustment_reason}): {global_costs.adjustment_total}")

    if result.consumed_constraints:
        lines.append("")
        lines.append("## Consumed constraints")
        inferred = set(result.inferred_constraints)
        for cid in result.consumed_constraints:
            origin = "inferred" if cid in inferred else "declared"
            lines.append(f"- {cid} ({origin})")
    out_path.write_text("\n".join(lines), encoding="utf-8")


@dataclass(frozen=True)
class QuotePricingInputs:
    rules: object
    quote: object
    base_price: object


def build_fixture_pricing_inputs(fixtures_dir: Path) -> QuotePricingInputs:
    _ensure_backend_on_path()
    from common.pricing_engine.catalog import build_rule_set, load_rule_records
    from common.pricing_engine.context import coerce_quote

    rules_path = fixtures_dir / "rules.json"
    if not rules_path.exists():
        rules_path = fixtures_dir / "rules.yaml"
    rules = build_rule_set(load_rule_records(rules_path))

    payload = _load_json(fixtures_dir / "quote.json")
    base_price = payload.pop("base_price", None)
    if base_price is None:
        raise SystemExit(f"{fixtures_dir / 'quote.json'} must define base_price.")
    return QuotePricingInputs(rules=rules, quote=coerce_quote(payload), base_price=base_price)


def run_quote_pricing_from_inputs(inputs: QuotePricingInputs, config=None):
    _ensure_backend_on_path()
    from common.pricing_engine.runner import PricingRunner

    return PricingRunner(inputs.rules, config).run(inputs.quote, inputs.base_price)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Price a quote from a fixtures directory (rules.json + quote.json) and write JSON/MD outputs."
    )
    parser.add_argument(
        "--fixtures-dir",
        required=True,
        help="Directory holding rules.json (or rules.yaml) and quote.json.",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Output directory for result files (defaults to fixtures dir).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Engine log level (DEBUG shows every skipped/applied rule).",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    _ensure_backend_on_path()
    from common.pricing_engine.config import load_engine_config

    fixtures_dir = Path(args.fixtures_dir).resolve()
    output_dir = Path(args.output_dir).resolve() if args.output_dir else fixtures_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    inputs = build_fixture_pricing_inputs(fixtures_dir)
    result = run_quote_pricing_from_inputs(inputs, load_engine_config())

    out_json = output_dir / "pricing_result.json"
    out_md = output_dir / "pricing_result.md"
    out_json.write_text(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False), encoding="utf-8")
    _write_markdown(result, out_md)

    print(f"Wrote {out_json}")
    print(f"Wrote {out_md}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
