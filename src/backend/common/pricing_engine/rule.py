from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Callable, Optional

from . import constraints as c
from .conditions import ConditionBase, TemporalCondition, parse_condition
from .config import EngineConfig
from .errors import InvalidRuleDefinition
from .models import RuleCategory, RuleScope
from .money import Money, to_decimal

if TYPE_CHECKING:
    from .context import EnrichedContext

Applicability = Callable[["EnrichedContext"], bool]

_DEFAULT_CONFIG = EngineConfig()


@dataclass(frozen=True)
class RuleApplyResult:
    impact: Money
    minimum_price: Optional[Money] = None

    @property
    def is_minimum_price(self) -> bool:
        return self.minimum_price is not None


@dataclass(frozen=True)
class Rule:
    """A single pricing rule.

    Rules are immutable and may be shared across concurrent computations. `value` is either a
    percentage of the running price (`is_percentage`) or a fixed amount; negative values are
    reductions. Minimum-price rules carry the floor amount in `value`.
    """

    id: str
    name: str
    value: Decimal
    is_percentage: bool = False
    category: Optional[RuleCategory] = None
    priority: int = 100
    scope: RuleScope = RuleScope.NONE
    condition: Optional[ConditionBase] = None
    applicability: Optional[Applicability] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not self.id or not str(self.id).strip():
            raise InvalidRuleDefinition("Rule must define an id")
        if not self.name:
            raise InvalidRuleDefinition(f"Rule {self.id} must define a name")
        try:
            value = to_decimal(self.value)
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidRuleDefinition(f"Rule {self.id} has a non-numeric value: {self.value!r}") from exc
        if not value.is_finite():
            raise InvalidRuleDefinition(f"Rule {self.id} has a non-finite value: {self.value!r}")
        object.__setattr__(self, "value", value)

        try:
            if self.category is not None and not isinstance(self.category, RuleCategory):
                object.__setattr__(self, "category", RuleCategory(str(self.category).lower()))
            if not isinstance(self.scope, RuleScope):
                object.__setattr__(self, "scope", RuleScope(str(self.scope or "none").lower()))
        except ValueError as exc:
            raise InvalidRuleDefinition(f"Rule {self.id}: {exc}") from exc
        object.__setattr__(self, "condition", parse_condition(self.condition))

        if self.is_percentage and self.category != RuleCategory.MINIMUM_PRICE:
            if not (Decimal("0") < abs(value) <= Decimal("100")):
                raise InvalidRuleDefinition(
                    f"Rule {self.id}: percentage value must satisfy 0 < |value| <= 100 (got {value})"
                )
        if self.category == RuleCategory.MINIMUM_PRICE and value < 0:
            raise InvalidRuleDefinition(f"Rule {self.id}: minimum price cannot be negative (got {value})")

    @property
    def constraint_name(self) -> Optional[str]:
        if self.condition is None:
            return None
        return self.condition.constraint_name()

    @property
    def is_minimum_price(self) -> bool:
        return self.category == RuleCategory.MINIMUM_PRICE

    def identities(self) -> set[str]:
        ids = {self.id}
        if self.constraint_name:
            ids.add(self.constraint_name)
        return ids

    def is_lift_rule(self, config: EngineConfig = _DEFAULT_CONFIG) -> bool:
        return (
            self.id in config.lift_rule_ids
            or config.is_lift_rule_name(self.name)
            or self.constraint_name == c.FURNITURE_LIFT_REQUIRED
        )

    def is_applicable(self, ctx: "EnrichedContext", config: EngineConfig = _DEFAULT_CONFIG) -> bool:
        if self.applicability is not None:
            return bool(self.applicability(ctx))
        if self.is_minimum_price:
            return True
        if self.is_lift_rule(config):
            return ctx.lift_required
        if isinstance(self.condition, TemporalCondition):
            return self.condition.matches(ctx.quote.scheduled_at, ctx.quote.holidays)
        return bool(self.identities() & ctx.selected_identifiers())

    def apply(self, current_price: Money) -> RuleApplyResult:
        if self.is_minimum_price:
            return RuleApplyResult(
                impact=Money.zero(current_price.currency),
                minimum_price=Money(self.value, current_price.currency).rounded(),
            )
        if self.is_percentage:
            return RuleApplyResult(impact=current_price.percentage(self.value))
        return RuleApplyResult(impact=Money(self.value, current_price.currency).rounded())

    def describe(self) -> str:
        if self.is_minimum_price:
            return f"{self.name}: minimum price {self.value}"
        if self.is_percentage:
            return f"{self.name}: {'+' if self.value > 0 else ''}{self.value}%"
        return f"{self.name}: {'+' if self.value > 0 else ''}{self.value}"

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "value": str(self.value),
            "is_percentage": self.is_percentage,
            "category": self.category.value if self.category else None,
            "priority": self.priority,
            "scope": self.scope.value,
            "condition": self.condition.model_dump(exclude_none=True) if self.condition else None,
        }
