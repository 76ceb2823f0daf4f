from __future__ import annotations

import os
import re
from decimal import Decimal
from typing import Iterable, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from . import constraints as c


class EngineConfig(BaseModel):
    currency: str = "EUR"

    # A lift is required strictly above this floor when no usable elevator exists.
    lift_floor_threshold: int = Field(default=3, ge=0)
    # Clients are warned about a possible lift strictly above this floor.
    warn_floor_threshold: int = Field(default=2, ge=0)
    large_volume_threshold: Decimal = Decimal("10")

    # Inference of undeclared subsumable constraints; drafts/previews switch this off upstream.
    allow_inference: bool = True

    lift_rule_ids: List[str] = Field(default_factory=lambda: [c.FURNITURE_LIFT_REQUIRED])
    lift_rule_names: List[str] = Field(
        default_factory=lambda: ["Monte-meuble", "Supplément monte-meuble", "Furniture lift"]
    )
    equipment_keywords: List[str] = Field(default_factory=lambda: ["lift", "monte-meuble"])
    temporal_keywords: List[str] = Field(
        default_factory=lambda: ["weekend", "week-end", "holiday", "férié", "ferie", "night", "nuit"]
    )
    pickup_keywords: List[str] = Field(
        default_factory=lambda: ["pickup", "départ", "depart", "origin", "chargement"]
    )
    delivery_keywords: List[str] = Field(
        default_factory=lambda: ["delivery", "arrivée", "arrivee", "destination", "livraison"]
    )

    def is_lift_rule_name(self, name: str) -> bool:
        return name.strip().lower() in {n.lower() for n in self.lift_rule_names}


def name_has_keyword(name: str, keywords: Iterable[str]) -> bool:
    """Whole-word, case-insensitive match; "chargement" does not hit "déchargement"."""
    lowered = name.lower()
    return any(re.search(rf"(?<!\w){re.escape(keyword.lower())}(?!\w)", lowered) for keyword in keywords)


def load_engine_config(base: Optional[EngineConfig] = None) -> EngineConfig:
    """
    Build engine configuration from environment variables (a local .env is honoured).

    Reads:
      PRICING_CURRENCY, PRICING_LIFT_FLOOR_THRESHOLD, PRICING_ALLOW_INFERENCE
    """
    load_dotenv()
    cfg = base or EngineConfig()
    overrides = {}

    currency = os.getenv("PRICING_CURRENCY", "").strip()
    if currency:
        overrides["currency"] = currency.upper()

    threshold = os.getenv("PRICING_LIFT_FLOOR_THRESHOLD", "").strip()
    if threshold:
        try:
            overrides["lift_floor_threshold"] = int(threshold)
        except ValueError as exc:
            raise ValueError("PRICING_LIFT_FLOOR_THRESHOLD must be an integer.") from exc
        if overrides["lift_floor_threshold"] < 0:
            raise ValueError("PRICING_LIFT_FLOOR_THRESHOLD must be >= 0.")

    allow = os.getenv("PRICING_ALLOW_INFERENCE", "").strip().lower()
    if allow:
        if allow not in ("1", "0", "true", "false", "yes", "no"):
            raise ValueError("PRICING_ALLOW_INFERENCE must be a boolean (true/false).")
        overrides["allow_inference"] = allow in ("1", "true", "yes")

    if not overrides:
        return cfg
    return cfg.model_copy(update=overrides)
