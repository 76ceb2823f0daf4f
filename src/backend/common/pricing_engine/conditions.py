"""Structured rule conditions.

A rule's condition is one shape from a closed set, discriminated by ``type``. Each shape maps
its field values back to the constraint identifier it stands for, which the applier uses for
consumption checks and address resolution.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, ClassVar, Dict, Iterable, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from . import constraints as c
from .errors import InvalidRuleDefinition

AddressHint = Literal["pickup", "delivery"]
NameTable = Tuple[Tuple[str, str, str], ...]


class ConditionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: Optional[AddressHint] = None

    # (field, value) -> constraint identifier, checked in order.
    constraint_names: ClassVar[NameTable] = ()

    def constraint_name(self) -> Optional[str]:
        for field_name, value, identifier in self.constraint_names:
            if getattr(self, field_name, None) == value:
                return identifier
        return None

    def address_hint(self) -> Optional[str]:
        return self.address


class IdentifierCondition(ConditionBase):
    type: Literal["identifier"] = "identifier"
    identifier: str

    def constraint_name(self) -> Optional[str]:
        return self.identifier


class VehicleAccessCondition(ConditionBase):
    type: Literal["vehicle_access"] = "vehicle_access"
    zone: Optional[str] = None
    road: Optional[str] = None
    parking: Optional[str] = None
    traffic: Optional[str] = None

    constraint_names: ClassVar[NameTable] = (
        ("zone", "pedestrian", c.PEDESTRIAN_ZONE),
        ("road", "narrow", c.NARROW_INACCESSIBLE_STREET),
        ("parking", "difficult", c.DIFFICULT_PARKING),
        ("parking", "limited", c.LIMITED_PARKING),
        ("traffic", "complex", c.COMPLEX_TRAFFIC),
    )


class BuildingCondition(ConditionBase):
    type: Literal["building"] = "building"
    elevator: Optional[str] = None
    stairs: Optional[str] = None
    corridors: Optional[str] = None

    constraint_names: ClassVar[NameTable] = (
        ("elevator", "unavailable", c.ELEVATOR_UNAVAILABLE),
        ("elevator", "small", c.ELEVATOR_UNSUITABLE_SIZE),
        ("elevator", "forbidden", c.ELEVATOR_FORBIDDEN_MOVING),
        ("stairs", "difficult", c.DIFFICULT_STAIRS),
        ("corridors", "narrow", c.NARROW_CORRIDORS),
    )


class DistanceCondition(ConditionBase):
    type: Literal["distance"] = "distance"
    carrying: Optional[str] = None
    access: Optional[str] = None

    constraint_names: ClassVar[NameTable] = (
        ("carrying", "long", c.LONG_CARRYING_DISTANCE),
        ("access", "indirect", c.INDIRECT_EXIT),
        ("access", "multilevel", c.COMPLEX_MULTILEVEL_ACCESS),
    )


class SecurityCondition(ConditionBase):
    type: Literal["security"] = "security"
    access: Optional[str] = None
    permit: Optional[str] = None
    time: Optional[str] = None
    floor: Optional[str] = None

    constraint_names: ClassVar[NameTable] = (
        ("access", "strict", c.ACCESS_CONTROL),
        ("permit", "required", c.ADMINISTRATIVE_PERMIT),
        ("time", "restricted", c.TIME_RESTRICTIONS),
        ("floor", "fragile", c.FRAGILE_FLOOR),
    )


class EquipmentCondition(ConditionBase):
    type: Literal["equipment"] = "equipment"
    lift: Optional[str] = None

    constraint_names: ClassVar[NameTable] = (("lift", "required", c.FURNITURE_LIFT_REQUIRED),)


class ServiceCondition(ConditionBase):
    type: Literal["service"] = "service"
    handling: Optional[str] = None
    packing: Optional[str] = None
    protection: Optional[str] = None
    storage: Optional[str] = None
    cleaning: Optional[str] = None
    admin: Optional[str] = None
    transport: Optional[str] = None

    constraint_names: ClassVar[NameTable] = (
        ("handling", "bulky", c.BULKY_FURNITURE),
        ("handling", "disassembly", c.FURNITURE_DISASSEMBLY),
        ("handling", "reassembly", c.FURNITURE_REASSEMBLY),
        ("handling", "piano", c.TRANSPORT_PIANO),
        ("packing", "departure", c.PROFESSIONAL_PACKING_DEPARTURE),
        ("packing", "arrival", c.PROFESSIONAL_UNPACKING_ARRIVAL),
        ("packing", "supplies", c.PACKING_SUPPLIES),
        ("packing", "artwork", c.ARTWORK_PACKING),
        ("protection", "fragile", c.FRAGILE_VALUABLE_ITEMS),
        ("protection", "heavy", c.HEAVY_ITEMS),
        ("protection", "insurance", c.ADDITIONAL_INSURANCE),
        ("protection", "inventory", c.PHOTO_INVENTORY),
        ("storage", "temporary", c.TEMPORARY_STORAGE_SERVICE),
        ("cleaning", "post_move", c.POST_MOVE_CLEANING),
        ("admin", "management", c.ADMINISTRATIVE_MANAGEMENT),
        ("transport", "animals", c.ANIMAL_TRANSPORT),
    )

    def address_hint(self) -> Optional[str]:
        if self.address:
            return self.address
        if self.packing == "departure":
            return "pickup"
        if self.packing == "arrival":
            return "delivery"
        return None


class TemporalCondition(ConditionBase):
    type: Literal["temporal"] = "temporal"
    period: Literal["weekend", "night", "holiday"]
    night_start_hour: int = Field(default=20, ge=0, le=23)
    night_end_hour: int = Field(default=7, ge=0, le=23)

    def matches(self, scheduled_at: Optional[datetime], holidays: Iterable[date] = ()) -> bool:
        if scheduled_at is None:
            return False
        if self.period == "weekend":
            return scheduled_at.weekday() >= 5
        if self.period == "holiday":
            return scheduled_at.date() in set(holidays)
        hour = scheduled_at.hour
        if self.night_start_hour > self.night_end_hour:
            return hour >= self.night_start_hour or hour < self.night_end_hour
        return self.night_start_hour <= hour < self.night_end_hour


RuleCondition = Annotated[
    Union[
        IdentifierCondition,
        VehicleAccessCondition,
        BuildingCondition,
        DistanceCondition,
        SecurityCondition,
        EquipmentCondition,
        ServiceCondition,
        TemporalCondition,
    ],
    Field(discriminator="type"),
]

_condition_adapter: TypeAdapter[Any] = TypeAdapter(RuleCondition)


def parse_condition(raw: Union[None, str, Dict[str, Any], ConditionBase]) -> Optional[ConditionBase]:
    """Turn a stored condition (bare identifier, mapping, or model) into a typed condition."""
    if raw is None or isinstance(raw, ConditionBase):
        return raw
    if isinstance(raw, str):
        raw = raw.strip()
        return IdentifierCondition(identifier=raw) if raw else None
    try:
        return _condition_adapter.validate_python(raw)
    except ValidationError as exc:
        raise InvalidRuleDefinition(f"Malformed rule condition {raw!r}: {exc}") from exc


def constraint_name_for(condition: Optional[ConditionBase]) -> Optional[str]:
    if condition is None:
        return None
    return condition.constraint_name()
