"""Automatic requirement detection for a single address.

A furniture lift is required when goods cannot go through a usable elevator and the floor is
above the configured threshold. Once a lift is confirmed, every constraint it physically
resolves is *consumed*: declared ones are consumed directly, and on a final submission the
undeclared ones are inferred and consumed too, so no rule keyed off the same physical fact
can bill it a second time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from . import constraints as c
from .config import EngineConfig
from .errors import InvalidAddressData
from .models import (
    AddressData,
    CarryDistanceBand,
    ElevatorClass,
    InferenceNote,
    LongCarryResult,
    RequirementDetectionResult,
)

logger = logging.getLogger(__name__)

_ELEVATOR_FAILURE_LABELS = (
    ("elevator_unavailable", "unavailable"),
    ("elevator_unsuitable", "unsuitable"),
    ("elevator_forbidden", "forbidden for moving"),
)


def validate_address_data(address: Union[AddressData, Mapping[str, Any]]) -> AddressData:
    """Reject addresses detection cannot reason about.

    Accepts an AddressData or a raw mapping; raises InvalidAddressData on a negative floor or an
    unknown elevator class / carry-distance band.
    """
    if not isinstance(address, AddressData):
        try:
            address = AddressData.model_validate(address)
        except ValidationError as exc:
            raise InvalidAddressData(f"Invalid address data: {exc}") from exc

    # Instances built with model_construct() skip validation; check again.
    if not isinstance(address.floor, int) or isinstance(address.floor, bool) or address.floor < 0:
        raise InvalidAddressData(f"Floor must be a non-negative integer (got {address.floor!r})")
    if not isinstance(address.elevator_class, ElevatorClass):
        try:
            ElevatorClass(address.elevator_class)
        except ValueError as exc:
            raise InvalidAddressData(f"Unknown elevator class: {address.elevator_class!r}") from exc
    band = address.carry_distance_band
    if band is not None and not isinstance(band, CarryDistanceBand):
        try:
            CarryDistanceBand(band)
        except ValueError as exc:
            raise InvalidAddressData(f"Unknown carry distance band: {band!r}") from exc
    return address


@dataclass(frozen=True)
class AutomaticConstraint:
    id: str
    location: str
    reason: str


@dataclass(frozen=True)
class AutomaticConstraintsReport:
    pickup: RequirementDetectionResult
    delivery: RequirementDetectionResult
    applied: tuple[AutomaticConstraint, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SelectionValidation:
    is_valid: bool
    blocked_constraint_id: Optional[str] = None
    reason: Optional[str] = None


class AddressRequirementDetector:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    @property
    def threshold(self) -> int:
        return self.config.lift_floor_threshold

    def detect_lift_requirement(
        self,
        address: AddressData,
        volume: Optional[Decimal] = None,
        *,
        allow_inference: bool = True,
        final_submission: bool = True,
        label: str = "address",
    ) -> RequirementDetectionResult:
        address = validate_address_data(address)
        elevator = ElevatorClass(address.elevator_class)
        declared = frozenset(address.declared_constraint_ids)

        if elevator in (ElevatorClass.MEDIUM, ElevatorClass.LARGE) and not address.has_elevator_failure:
            return RequirementDetectionResult()

        reason = self._lift_reason(address, elevator)
        if reason is None:
            return RequirementDetectionResult(declared_constraints=declared)

        consumed_from_declared = declared & c.SUBSUMABLE_BY_LIFT
        inferred: frozenset[str] = frozenset()
        note = None
        if allow_inference and final_submission:
            inferred = c.SUBSUMABLE_BY_LIFT - declared
            if inferred:
                note = InferenceNote(
                    reason=(
                        f"Lift required at {label}; {len(inferred)} undeclared constraint(s) it resolves "
                        "are assumed present and consumed"
                    ),
                    timestamp=datetime.now(timezone.utc),
                    inference_allowed=True,
                )
                logger.info("Inferred %d lift-resolved constraint(s) at %s", len(inferred), label)

        return RequirementDetectionResult(
            lift_required=True,
            lift_reason=reason,
            declared_constraints=declared,
            inferred_constraints=inferred,
            consumed_constraints=consumed_from_declared | inferred,
            inference_note=note,
        )

    def _lift_reason(self, address: AddressData, elevator: ElevatorClass) -> Optional[str]:
        if address.floor <= self.threshold:
            return None
        if elevator == ElevatorClass.NONE:
            return f"floor {address.floor} with no elevator (threshold {self.threshold})"
        causes = [label for attr, label in _ELEVATOR_FAILURE_LABELS if getattr(address, attr)]
        reason = f"floor {address.floor} with {elevator.value} elevator"
        if causes:
            reason += " (" + ", ".join(causes) + ")"
        return f"{reason} (threshold {self.threshold})"

    def detect_long_carry_requirement(self, address: AddressData) -> LongCarryResult:
        address = validate_address_data(address)
        if address.carry_distance_band == CarryDistanceBand.LONG:
            return LongCarryResult(required=True, reason="carry distance over 30 m")
        return LongCarryResult()

    def detect(
        self,
        address: AddressData,
        volume: Optional[Decimal] = None,
        *,
        allow_inference: bool = True,
        final_submission: bool = True,
        label: str = "address",
    ) -> RequirementDetectionResult:
        """Lift and long-carry detection merged into one result."""
        lift = self.detect_lift_requirement(
            address,
            volume,
            allow_inference=allow_inference,
            final_submission=final_submission,
            label=label,
        )
        carry = self.detect_long_carry_requirement(address)
        return lift.model_copy(update={"long_carry_required": carry.required, "carry_reason": carry.reason})

    def detect_automatic_constraints(
        self,
        pickup: AddressData,
        delivery: AddressData,
        volume: Optional[Decimal] = None,
    ) -> AutomaticConstraintsReport:
        pickup_result = self.detect(pickup, volume, allow_inference=False, label="pickup")
        delivery_result = self.detect(delivery, volume, allow_inference=False, label="delivery")

        applied: List[AutomaticConstraint] = []
        for location, result in (("pickup", pickup_result), ("delivery", delivery_result)):
            if result.lift_required:
                applied.append(
                    AutomaticConstraint(c.FURNITURE_LIFT_REQUIRED, location, result.lift_reason or "lift required")
                )
        for location, result in (("pickup", pickup_result), ("delivery", delivery_result)):
            if result.long_carry_required:
                applied.append(
                    AutomaticConstraint(c.LONG_CARRYING_DISTANCE, location, result.carry_reason or "long carry")
                )
        return AutomaticConstraintsReport(pickup=pickup_result, delivery=delivery_result, applied=tuple(applied))

    def detailed_lift_reasons(self, address: AddressData, volume: Optional[Decimal] = None) -> List[str]:
        declared = set(address.declared_constraint_ids)
        reasons = []
        for identifier in (c.DIFFICULT_STAIRS, c.NARROW_CORRIDORS, c.INDIRECT_EXIT, c.BULKY_FURNITURE, c.HEAVY_ITEMS):
            if identifier in declared:
                reasons.append(c.display_name(identifier).lower())
        if address.floor > self.threshold and address.elevator_class in (ElevatorClass.NONE, ElevatorClass.SMALL):
            reasons.append(f"high floor ({address.floor})")
        if volume is not None and Decimal(str(volume)) >= self.config.large_volume_threshold:
            reasons.append(f"large volume ({volume} m3)")
        return reasons

    def should_warn_user(self, address: AddressData) -> bool:
        if address.floor > self.config.warn_floor_threshold and address.elevator_class in (
            ElevatorClass.NONE,
            ElevatorClass.SMALL,
        ):
            return True
        return any(cid in c.CRITICAL_CONSTRAINTS_REQUIRING_LIFT for cid in address.declared_constraint_ids)

    def validate_constraint_selection(
        self,
        previous_ids: Sequence[str],
        new_ids: Sequence[str],
        address: AddressData,
        volume: Optional[Decimal] = None,
    ) -> SelectionValidation:
        """Block un-ticking an automatic requirement that detection still imposes."""
        lift = self.detect_lift_requirement(address, volume, allow_inference=False)
        if c.FURNITURE_LIFT_REQUIRED in previous_ids and c.FURNITURE_LIFT_REQUIRED not in new_ids and lift.lift_required:
            return SelectionValidation(False, c.FURNITURE_LIFT_REQUIRED, lift.lift_reason)

        carry = self.detect_long_carry_requirement(address)
        if c.LONG_CARRYING_DISTANCE in previous_ids and c.LONG_CARRYING_DISTANCE not in new_ids and carry.required:
            return SelectionValidation(False, c.LONG_CARRYING_DISTANCE, carry.reason)
        return SelectionValidation(True)

    def apply_automatic_constraints(
        self,
        selected_ids: Iterable[str],
        address: AddressData,
        volume: Optional[Decimal] = None,
    ) -> List[str]:
        result = list(selected_ids)
        if self.detect_lift_requirement(address, volume, allow_inference=False).lift_required:
            if c.FURNITURE_LIFT_REQUIRED not in result:
                result.append(c.FURNITURE_LIFT_REQUIRED)
        if self.detect_long_carry_requirement(address).required and c.LONG_CARRYING_DISTANCE not in result:
            result.append(c.LONG_CARRYING_DISTANCE)
        return result


def automatic_constraint_ids(report: AutomaticConstraintsReport) -> dict[str, List[str]]:
    ids: dict[str, List[str]] = {"pickup": [], "delivery": []}
    for constraint in report.applied:
        ids[constraint.location].append(constraint.id)
    return ids


def summary(report: AutomaticConstraintsReport) -> List[str]:
    lines = [f"[{item.location}] {item.reason}" for item in report.applied]
    return lines or ["No automatic constraint detected"]
