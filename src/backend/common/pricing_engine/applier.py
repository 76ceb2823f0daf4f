from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .config import EngineConfig, name_has_keyword
from .context import EnrichedContext
from .models import RequirementDetectionResult, RuleScope
from .money import Money
from .registry import RuleSet
from .rule import Rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeResolution:
    address: str
    tier: str


@dataclass(frozen=True)
class AppliedRuleOutcome:
    rule: Rule
    address: str
    resolution_tier: str
    impact: Money
    original_impact: Money
    price_before: Money
    price_after: Money
    pickup_detection: RequirementDetectionResult
    delivery_detection: RequirementDetectionResult
    is_minimum_price: bool = False
    minimum_price: Optional[Money] = None


def resolve_address_scope(
    rule: Rule,
    ctx: EnrichedContext,
    config: Optional[EngineConfig] = None,
) -> ScopeResolution:
    """Decide which address a rule's effect belongs to.

    Tiers, first confident answer wins: rule name keywords, identity found in the per-address
    identifier sets, the condition's address hint, then the rule's declared scope. Only the
    identity tier can answer "both".
    """
    config = config or EngineConfig()

    at_pickup = name_has_keyword(rule.name, config.pickup_keywords)
    at_delivery = name_has_keyword(rule.name, config.delivery_keywords)
    if at_pickup != at_delivery:
        return ScopeResolution("pickup" if at_pickup else "delivery", "name")

    identities = rule.identities()
    in_pickup = bool(identities & ctx.pickup_identifiers())
    in_delivery = bool(identities & ctx.delivery_identifiers())
    if in_pickup and in_delivery:
        return ScopeResolution("both", "identity")
    if in_pickup or in_delivery:
        return ScopeResolution("pickup" if in_pickup else "delivery", "identity")

    hint = rule.condition.address_hint() if rule.condition is not None else None
    if hint in ("pickup", "delivery"):
        return ScopeResolution(hint, "condition")

    if rule.scope in (RuleScope.PICKUP, RuleScope.DELIVERY):
        return ScopeResolution(rule.scope.value, "declared")
    return ScopeResolution("none", "default")


class RuleApplier:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def should_skip(self, rule: Rule, ctx: EnrichedContext) -> Tuple[bool, Optional[str]]:
        if not ctx.lift_required or not ctx.consumed_constraints:
            return False, None
        if rule.is_lift_rule(self.config):
            return False, None
        for identity in (rule.id, rule.constraint_name):
            if identity and identity in ctx.consumed_constraints:
                provenance = "inferred automatically" if ctx.was_inferred(identity) else "declared by the client"
                return True, f"consumed by furniture lift ({provenance})"
        return False, None

    def apply(self, rules: Iterable[Rule], ctx: EnrichedContext, base_price: Money) -> List[AppliedRuleOutcome]:
        outcomes: List[AppliedRuleOutcome] = []
        current = base_price.rounded()

        for rule in RuleSet.coerce(rules):
            skip, reason = self.should_skip(rule, ctx)
            if skip:
                logger.debug("Rule %s (%s) skipped: %s", rule.id, rule.name, reason)
                continue
            try:
                outcome = self._evaluate(rule, ctx, current)
            except Exception:
                logger.exception("Rule %s (%s) failed during evaluation; not applied", rule.id, rule.name)
                continue
            if outcome is None:
                continue
            outcomes.append(outcome)
            current = outcome.price_after

        return outcomes

    def _evaluate(
        self,
        rule: Rule,
        ctx: EnrichedContext,
        current: Money,
    ) -> Optional[AppliedRuleOutcome]:
        if not rule.is_applicable(ctx, self.config):
            logger.debug("Rule %s (%s) not applicable", rule.id, rule.name)
            return None

        result = rule.apply(current)
        if result.is_minimum_price:
            logger.debug("Rule %s (%s) sets minimum price %s", rule.id, rule.name, result.minimum_price)
            return AppliedRuleOutcome(
                rule=rule,
                address="none",
                resolution_tier="minimum_price",
                impact=Money.zero(current.currency),
                original_impact=Money.zero(current.currency),
                price_before=current,
                price_after=current,
                pickup_detection=ctx.pickup_detection,
                delivery_detection=ctx.delivery_detection,
                is_minimum_price=True,
                minimum_price=result.minimum_price,
            )

        if result.impact.is_zero():
            logger.debug("Rule %s (%s) has no monetary impact", rule.id, rule.name)
            return None

        scope = resolve_address_scope(rule, ctx, self.config)
        # Present at two distinct locations: billed once per location.
        impact = result.impact.multiply(2) if scope.address == "both" else result.impact
        price_after = (current + impact).rounded()
        logger.debug(
            "Rule %s (%s) applied at %s [%s]: %s -> %s",
            rule.id,
            rule.name,
            scope.address,
            scope.tier,
            current,
            price_after,
        )
        return AppliedRuleOutcome(
            rule=rule,
            address=scope.address,
            resolution_tier=scope.tier,
            impact=impact,
            original_impact=result.impact,
            price_before=current,
            price_after=price_after,
            pickup_detection=ctx.pickup_detection,
            delivery_detection=ctx.delivery_detection,
        )
