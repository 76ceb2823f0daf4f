from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .applier import AppliedRuleOutcome
from .conditions import TemporalCondition
from .config import EngineConfig, name_has_keyword
from .context import EnrichedContext, combined_lift_reason
from .models import (
    AddressCosts,
    AppliedRuleDetail,
    AppliedRuleType,
    ExecutionResult,
    RequirementDetectionResult,
    RuleCategory,
)
from .money import CENT, Money, sum_money

logger = logging.getLogger(__name__)

_CATEGORY_TYPES = {
    RuleCategory.CONSTRAINT: AppliedRuleType.CONSTRAINT,
    RuleCategory.ADDITIONAL_SERVICE: AppliedRuleType.ADDITIONAL_SERVICE,
    RuleCategory.EQUIPMENT: AppliedRuleType.EQUIPMENT,
    RuleCategory.TEMPORAL: AppliedRuleType.TEMPORAL,
}

# AppliedRuleType -> AddressCosts (list field, subtotal field)
_BUCKET_FIELDS = {
    AppliedRuleType.CONSTRAINT: ("constraints", "constraints_total"),
    AppliedRuleType.ADDITIONAL_SERVICE: ("additional_services", "additional_services_total"),
    AppliedRuleType.EQUIPMENT: ("equipment", "equipment_total"),
    AppliedRuleType.REDUCTION: ("reductions", "reductions_total"),
    AppliedRuleType.TEMPORAL: ("temporal", "temporal_total"),
}


def classify_outcome(outcome: AppliedRuleOutcome, config: Optional[EngineConfig] = None) -> AppliedRuleType:
    config = config or EngineConfig()
    rule = outcome.rule

    if outcome.impact.is_negative() or rule.value < 0:
        return AppliedRuleType.REDUCTION
    if isinstance(rule.condition, TemporalCondition) or name_has_keyword(rule.name, config.temporal_keywords):
        return AppliedRuleType.TEMPORAL
    if rule.category in _CATEGORY_TYPES:
        return _CATEGORY_TYPES[rule.category]
    if rule.is_lift_rule(config) or name_has_keyword(rule.name, config.equipment_keywords):
        return AppliedRuleType.EQUIPMENT
    if rule.is_percentage:
        return AppliedRuleType.CONSTRAINT
    return AppliedRuleType.ADDITIONAL_SERVICE


def _split_both(impact: Money) -> Tuple[Money, Money]:
    half = (impact.amount / 2).quantize(CENT, rounding=ROUND_HALF_UP)
    pickup_share = Money(half, impact.currency)
    return pickup_share, impact - pickup_share


def _detail(outcome: AppliedRuleOutcome, kind: AppliedRuleType, impact: Money, address: str) -> AppliedRuleDetail:
    rule = outcome.rule
    return AppliedRuleDetail(
        rule_id=rule.id,
        name=rule.name,
        category=kind,
        value=rule.value,
        is_percentage=rule.is_percentage,
        impact=impact,
        address=address,
        description=rule.describe(),
    )


def _build_costs(
    entries: Sequence[Tuple[AppliedRuleType, AppliedRuleDetail]],
    currency: str,
    *,
    lift_required: bool,
    lift_reason: Optional[str],
    consumed: Iterable[str],
    adjustment: Optional[Money] = None,
    adjustment_reason: Optional[str] = None,
) -> AddressCosts:
    lists: Dict[str, List[AppliedRuleDetail]] = {list_field: [] for list_field, _ in _BUCKET_FIELDS.values()}
    subtotals: Dict[str, Money] = {total_field: Money.zero(currency) for _, total_field in _BUCKET_FIELDS.values()}
    total = Money.zero(currency)

    for kind, detail in entries:
        list_field, total_field = _BUCKET_FIELDS[kind]
        lists[list_field].append(detail)
        # Reductions subtotal is the amount taken off: the negated signed impact.
        delta = -detail.impact if kind == AppliedRuleType.REDUCTION else detail.impact
        subtotals[total_field] = subtotals[total_field] + delta
        total = total + detail.impact

    if adjustment is None:
        adjustment = Money.zero(currency)
    total = total + adjustment

    return AddressCosts(
        **{name: tuple(items) for name, items in lists.items()},
        **subtotals,
        adjustment_total=adjustment,
        adjustment_reason=adjustment_reason,
        total=total,
        lift_required=lift_required,
        lift_reason=lift_reason,
        consumed_constraints=tuple(sorted(consumed)),
    )


class PriceAggregator:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def finalize(
        self,
        base_price: Money,
        outcomes: Sequence[AppliedRuleOutcome],
        *,
        enriched: Optional[EnrichedContext] = None,
        rules_evaluated: Optional[int] = None,
    ) -> ExecutionResult:
        currency = base_price.currency
        base_price = base_price.rounded()

        applied: List[AppliedRuleDetail] = []
        by_kind: Dict[AppliedRuleType, List[AppliedRuleDetail]] = {kind: [] for kind in AppliedRuleType}
        buckets: Dict[str, List[Tuple[AppliedRuleType, AppliedRuleDetail]]] = {
            "pickup": [],
            "delivery": [],
            "global": [],
        }
        minimum: Optional[Money] = None

        for outcome in outcomes:
            if outcome.is_minimum_price:
                if outcome.minimum_price is not None:
                    minimum = outcome.minimum_price if minimum is None else minimum.max(outcome.minimum_price)
                continue

            kind = classify_outcome(outcome, self.config)
            detail = _detail(outcome, kind, outcome.impact, outcome.address)
            applied.append(detail)
            by_kind[kind].append(detail)

            if outcome.address == "both":
                pickup_share, delivery_share = _split_both(outcome.impact)
                buckets["pickup"].append((kind, _detail(outcome, kind, pickup_share, "pickup")))
                buckets["delivery"].append((kind, _detail(outcome, kind, delivery_share, "delivery")))
            elif outcome.address in ("pickup", "delivery"):
                buckets[outcome.address].append((kind, detail))
            else:
                buckets["global"].append((kind, detail))

        candidate = base_price + sum_money((d.impact for d in applied), currency)
        minimum_applied = False
        adjustment_reason: Optional[str] = None
        if minimum is not None and candidate < minimum:
            final_price = minimum
            minimum_applied = True
            adjustment_reason = "minimum price"
            logger.info("Minimum price %s applied over candidate %s", minimum, candidate)
        elif candidate.is_negative():
            final_price = Money.zero(currency)
            adjustment_reason = "clamped to zero"
        else:
            final_price = candidate
        final_price = final_price.rounded()
        # Floor and clamp are not attributable to an address; booked as a global adjustment.
        adjustment = final_price - candidate

        pickup_det, delivery_det = self._detections(outcomes, enriched)
        if enriched is not None:
            declared = enriched.declared_constraints
            inferred = enriched.inferred_constraints
            consumed = enriched.consumed_constraints
            metadata = enriched.inference_metadata()
        else:
            declared = pickup_det.declared_constraints | delivery_det.declared_constraints
            inferred = (pickup_det.inferred_constraints | delivery_det.inferred_constraints) - declared
            consumed = pickup_det.consumed_constraints | delivery_det.consumed_constraints
            metadata = {}
        lift_required = pickup_det.lift_required or delivery_det.lift_required
        lift_reason = combined_lift_reason(pickup_det, delivery_det)

        total_constraints = sum_money((d.impact for d in by_kind[AppliedRuleType.CONSTRAINT]), currency)
        total_services = sum_money((d.impact for d in by_kind[AppliedRuleType.ADDITIONAL_SERVICE]), currency)
        total_reductions = sum_money((-d.impact for d in by_kind[AppliedRuleType.REDUCTION]), currency)

        return ExecutionResult(
            base_price=base_price,
            final_price=final_price,
            total_reductions=total_reductions,
            total_surcharges=total_constraints + total_services,
            total_constraints=total_constraints,
            total_additional_services=total_services,
            applied_rules=tuple(applied),
            reductions=tuple(by_kind[AppliedRuleType.REDUCTION]),
            constraints=tuple(by_kind[AppliedRuleType.CONSTRAINT]),
            additional_services=tuple(by_kind[AppliedRuleType.ADDITIONAL_SERVICE]),
            equipment=tuple(by_kind[AppliedRuleType.EQUIPMENT]),
            temporal_rules=tuple(by_kind[AppliedRuleType.TEMPORAL]),
            pickup_costs=_build_costs(
                buckets["pickup"],
                currency,
                lift_required=pickup_det.lift_required,
                lift_reason=pickup_det.lift_reason,
                consumed=pickup_det.consumed_constraints,
            ),
            delivery_costs=_build_costs(
                buckets["delivery"],
                currency,
                lift_required=delivery_det.lift_required,
                lift_reason=delivery_det.lift_reason,
                consumed=delivery_det.consumed_constraints,
            ),
            global_costs=_build_costs(
                buckets["global"],
                currency,
                lift_required=lift_required,
                lift_reason=lift_reason,
                consumed=consumed,
                adjustment=adjustment,
                adjustment_reason=adjustment_reason,
            ),
            consumed_constraints=tuple(sorted(consumed)),
            declared_constraints=tuple(sorted(declared)),
            inferred_constraints=tuple(sorted(inferred)),
            consumption_reason="consumed by furniture lift" if consumed else None,
            inference_metadata=metadata,
            total_rules_evaluated=rules_evaluated if rules_evaluated is not None else len(outcomes),
            total_rules_applied=len(applied) + (1 if minimum_applied else 0),
            lift_required=lift_required,
            lift_reason=lift_reason,
            pickup_long_carry=pickup_det.long_carry_required,
            delivery_long_carry=delivery_det.long_carry_required,
            minimum_price_applied=minimum_applied,
            minimum_price_amount=minimum if minimum_applied else None,
        )

    @staticmethod
    def _detections(
        outcomes: Sequence[AppliedRuleOutcome],
        enriched: Optional[EnrichedContext],
    ) -> Tuple[RequirementDetectionResult, RequirementDetectionResult]:
        if enriched is not None:
            return enriched.pickup_detection, enriched.delivery_detection
        if outcomes:
            return outcomes[0].pickup_detection, outcomes[0].delivery_detection
        return RequirementDetectionResult(), RequirementDetectionResult()

