from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import constraints as c
from .money import Money


class ElevatorClass(str, Enum):
    NONE = "none"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class CarryDistanceBand(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class RuleScope(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    BOTH = "both"
    GLOBAL = "global"
    NONE = "none"


class RuleCategory(str, Enum):
    CONSTRAINT = "constraint"
    ADDITIONAL_SERVICE = "additional_service"
    EQUIPMENT = "equipment"
    TEMPORAL = "temporal"
    REDUCTION = "reduction"
    SURCHARGE = "surcharge"
    MINIMUM_PRICE = "minimum_price"


class AppliedRuleType(str, Enum):
    REDUCTION = "reduction"
    CONSTRAINT = "constraint"
    ADDITIONAL_SERVICE = "additional_service"
    EQUIPMENT = "equipment"
    TEMPORAL = "temporal"


AddressLabel = Literal["pickup", "delivery", "both", "none"]

# Form values used by the booking front end.
_ELEVATOR_ALIASES = {"no": ElevatorClass.NONE, "": ElevatorClass.NONE}
_CARRY_ALIASES = {
    "0-10": CarryDistanceBand.SHORT,
    "10-30": CarryDistanceBand.MEDIUM,
    "30+": CarryDistanceBand.LONG,
}


class AddressData(BaseModel):
    model_config = ConfigDict(frozen=True)

    floor: int = 0
    elevator_class: ElevatorClass = ElevatorClass.NONE
    elevator_unavailable: bool = False
    elevator_unsuitable: bool = False
    elevator_forbidden: bool = False
    carry_distance_band: Optional[CarryDistanceBand] = None
    declared_constraint_ids: Tuple[str, ...] = ()

    @field_validator("declared_constraint_ids", mode="before")
    @classmethod
    def _dedupe_ids(cls, value):
        if value is None:
            return ()
        # Keep submission order; rules match on these verbatim.
        return tuple(dict.fromkeys(value))

    @property
    def has_elevator_failure(self) -> bool:
        return self.elevator_unavailable or self.elevator_unsuitable or self.elevator_forbidden

    @classmethod
    def from_form(
        cls,
        *,
        floor: Union[str, int, None] = None,
        elevator: Optional[str] = None,
        carry_distance: Optional[str] = None,
        selected_constraints: Optional[List[str]] = None,
    ) -> "AddressData":
        """Normalize raw booking-form values into an AddressData."""
        if isinstance(floor, str):
            try:
                floor_value = int(floor.strip() or 0)
            except ValueError:
                floor_value = 0
        else:
            floor_value = floor or 0

        elevator_raw = (elevator or "no").strip().lower()
        elevator_value = _ELEVATOR_ALIASES.get(elevator_raw, elevator_raw)

        carry_value: Any = None
        if carry_distance:
            carry_value = _CARRY_ALIASES.get(carry_distance.strip(), carry_distance.strip())

        selected = list(selected_constraints or [])
        return cls(
            floor=floor_value,
            elevator_class=elevator_value,
            elevator_unavailable=c.ELEVATOR_UNAVAILABLE in selected,
            elevator_unsuitable=c.ELEVATOR_UNSUITABLE_SIZE in selected,
            elevator_forbidden=c.ELEVATOR_FORBIDDEN_MOVING in selected,
            carry_distance_band=carry_value,
            declared_constraint_ids=selected,
        )


class QuoteContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    pickup: AddressData = Field(default_factory=AddressData)
    delivery: AddressData = Field(default_factory=AddressData)
    volume: Optional[Decimal] = None
    pickup_services: Tuple[str, ...] = ()
    delivery_services: Tuple[str, ...] = ()
    global_services: Tuple[str, ...] = ()
    global_constraints: Tuple[str, ...] = ()
    scheduled_at: Optional[datetime] = None
    holidays: Tuple[date, ...] = ()


class InferenceNote(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str
    timestamp: datetime
    inference_allowed: bool


class RequirementDetectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    lift_required: bool = False
    lift_reason: Optional[str] = None
    long_carry_required: bool = False
    carry_reason: Optional[str] = None
    declared_constraints: frozenset[str] = frozenset()
    inferred_constraints: frozenset[str] = frozenset()
    consumed_constraints: frozenset[str] = frozenset()
    inference_note: Optional[InferenceNote] = None


class LongCarryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: bool = False
    reason: Optional[str] = None


class AppliedRuleDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: str
    name: str
    category: AppliedRuleType
    value: Decimal
    is_percentage: bool
    impact: Money
    address: AddressLabel = "none"
    consumed: bool = False
    description: str = ""


class AddressCosts(BaseModel):
    model_config = ConfigDict(frozen=True)

    constraints: Tuple[AppliedRuleDetail, ...] = ()
    additional_services: Tuple[AppliedRuleDetail, ...] = ()
    equipment: Tuple[AppliedRuleDetail, ...] = ()
    reductions: Tuple[AppliedRuleDetail, ...] = ()
    temporal: Tuple[AppliedRuleDetail, ...] = ()

    constraints_total: Money = Field(default_factory=Money.zero)
    additional_services_total: Money = Field(default_factory=Money.zero)
    equipment_total: Money = Field(default_factory=Money.zero)
    # Amount taken off by reductions (negated signed impact); `total` adds the signed impacts.
    reductions_total: Money = Field(default_factory=Money.zero)
    temporal_total: Money = Field(default_factory=Money.zero)
    # Minimum-price floor or zero clamp; only ever set on the global bucket.
    adjustment_total: Money = Field(default_factory=Money.zero)
    adjustment_reason: Optional[str] = None
    total: Money = Field(default_factory=Money.zero)

    lift_required: bool = False
    lift_reason: Optional[str] = None
    consumed_constraints: Tuple[str, ...] = ()

    @classmethod
    def empty(cls, currency: str = "EUR") -> "AddressCosts":
        zero = Money.zero(currency)
        return cls(
            constraints_total=zero,
            additional_services_total=zero,
            equipment_total=zero,
            reductions_total=zero,
            temporal_total=zero,
            adjustment_total=zero,
            total=zero,
        )


class ExecutionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_price: Money
    final_price: Money
    total_reductions: Money
    total_surcharges: Money
    total_constraints: Money
    total_additional_services: Money

    applied_rules: Tuple[AppliedRuleDetail, ...] = ()
    reductions: Tuple[AppliedRuleDetail, ...] = ()
    constraints: Tuple[AppliedRuleDetail, ...] = ()
    additional_services: Tuple[AppliedRuleDetail, ...] = ()
    equipment: Tuple[AppliedRuleDetail, ...] = ()
    temporal_rules: Tuple[AppliedRuleDetail, ...] = ()

    pickup_costs: AddressCosts
    delivery_costs: AddressCosts
    global_costs: AddressCosts

    consumed_constraints: Tuple[str, ...] = ()
    declared_constraints: Tuple[str, ...] = ()
    inferred_constraints: Tuple[str, ...] = ()
    consumption_reason: Optional[str] = None
    inference_metadata: Dict[str, Any] = Field(default_factory=dict)

    total_rules_evaluated: int = 0
    total_rules_applied: int = 0

    lift_required: bool = False
    lift_reason: Optional[str] = None
    pickup_long_carry: bool = False
    delivery_long_carry: bool = False

    minimum_price_applied: bool = False
    minimum_price_amount: Optional[Money] = None

    def applied_rule_ids(self) -> List[str]:
        return [detail.rule_id for detail in self.applied_rules]
