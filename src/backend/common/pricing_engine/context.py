from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from . import constraints as c
from .config import EngineConfig
from .detection import AddressRequirementDetector
from .errors import InvalidQuoteContext
from .models import QuoteContext, RequirementDetectionResult


def _unique(*groups: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(item for group in groups for item in group))


@dataclass(frozen=True)
class EnrichedContext:
    """The quote plus everything detection derived from it.

    Rule matching uses the verbatim identifier tuples; `display_names` is diagnostics only.
    """

    quote: QuoteContext
    all_services: Tuple[str, ...]
    pickup_detection: RequirementDetectionResult
    delivery_detection: RequirementDetectionResult
    lift_required: bool
    consumed_constraints: frozenset[str]
    declared_constraints: frozenset[str]
    inferred_constraints: frozenset[str]
    pickup_declared: Tuple[str, ...] = ()
    delivery_declared: Tuple[str, ...] = ()
    global_declared: Tuple[str, ...] = ()
    display_names: Mapping[str, str] = field(default_factory=dict)

    @property
    def lift_reason(self) -> Optional[str]:
        return combined_lift_reason(self.pickup_detection, self.delivery_detection)

    def pickup_identifiers(self) -> frozenset[str]:
        return frozenset(self.pickup_declared) | frozenset(self.quote.pickup_services) | _automatic_ids(
            self.pickup_detection
        )

    def delivery_identifiers(self) -> frozenset[str]:
        return frozenset(self.delivery_declared) | frozenset(self.quote.delivery_services) | _automatic_ids(
            self.delivery_detection
        )

    def selected_identifiers(self) -> frozenset[str]:
        return (
            self.pickup_identifiers()
            | self.delivery_identifiers()
            | frozenset(self.all_services)
            | frozenset(self.global_declared)
        )

    def was_inferred(self, identifier: str) -> bool:
        return identifier in self.inferred_constraints

    def inference_metadata(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {}
        for label, detection in (("pickup", self.pickup_detection), ("delivery", self.delivery_detection)):
            note = detection.inference_note
            if note is None:
                continue
            meta[label] = {
                "reason": note.reason,
                "timestamp": note.timestamp.isoformat(),
                "inference_allowed": note.inference_allowed,
                "inferred": sorted(detection.inferred_constraints),
            }
        return meta


def combined_lift_reason(
    pickup: RequirementDetectionResult, delivery: RequirementDetectionResult
) -> Optional[str]:
    reasons = []
    if pickup.lift_required:
        reasons.append(f"pickup: {pickup.lift_reason}")
    if delivery.lift_required:
        reasons.append(f"delivery: {delivery.lift_reason}")
    return "; ".join(reasons) or None


def _automatic_ids(detection: RequirementDetectionResult) -> frozenset[str]:
    ids = set()
    if detection.lift_required:
        ids.add(c.FURNITURE_LIFT_REQUIRED)
    if detection.long_carry_required:
        ids.add(c.LONG_CARRYING_DISTANCE)
    return frozenset(ids)


def coerce_quote(quote: Union[QuoteContext, Mapping[str, Any]]) -> QuoteContext:
    if isinstance(quote, QuoteContext):
        return quote
    try:
        return QuoteContext.model_validate(quote)
    except ValidationError as exc:
        raise InvalidQuoteContext(f"Invalid quote context: {exc}") from exc


class ContextEnricher:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        detector: Optional[AddressRequirementDetector] = None,
        *,
        final_submission: bool = True,
    ):
        self.config = config or EngineConfig()
        self.detector = detector or AddressRequirementDetector(self.config)
        self.final_submission = final_submission

    def enrich(self, quote: Union[QuoteContext, Mapping[str, Any]], rules: Iterable[Any] = ()) -> EnrichedContext:
        # `rules` is accepted for interface symmetry with the applier; enrichment does not depend on it.
        quote = coerce_quote(quote)
        options = {"allow_inference": self.config.allow_inference, "final_submission": self.final_submission}
        pickup = self.detector.detect(quote.pickup, quote.volume, label="pickup", **options)
        delivery = self.detector.detect(quote.delivery, quote.volume, label="delivery", **options)

        # Taken from the quote, not detection: a usable elevator yields empty detection provenance.
        declared = (
            frozenset(quote.pickup.declared_constraint_ids)
            | frozenset(quote.delivery.declared_constraint_ids)
            | frozenset(quote.global_constraints)
        )
        # Declared at one address wins over inferred at the other.
        inferred = (pickup.inferred_constraints | delivery.inferred_constraints) - declared
        consumed = pickup.consumed_constraints | delivery.consumed_constraints

        pickup_declared = tuple(quote.pickup.declared_constraint_ids)
        delivery_declared = tuple(quote.delivery.declared_constraint_ids)
        names = {cid: c.display_name(cid) for cid in _unique(pickup_declared, delivery_declared, quote.global_constraints)}

        return EnrichedContext(
            quote=quote,
            all_services=_unique(quote.pickup_services, quote.delivery_services, quote.global_services),
            pickup_detection=pickup,
            delivery_detection=delivery,
            lift_required=pickup.lift_required or delivery.lift_required,
            consumed_constraints=consumed,
            declared_constraints=declared,
            inferred_constraints=inferred,
            pickup_declared=pickup_declared,
            delivery_declared=delivery_declared,
            global_declared=tuple(quote.global_constraints),
            display_names=names,
        )
