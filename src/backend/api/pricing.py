from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from common.pricing_engine.catalog import load_rule_file
from common.pricing_engine.config import load_engine_config
from common.pricing_engine.detection import (
    AddressRequirementDetector,
    automatic_constraint_ids,
    summary,
)
from common.pricing_engine.errors import PricingInputError
from common.pricing_engine.models import AddressData, QuoteContext
from common.pricing_engine.runner import PricingRunner


router = APIRouter(prefix="/pricing", tags=["pricing"])


class PriceQuoteRequest(BaseModel):
    quote: QuoteContext
    base_price: Decimal = Field(ge=0)
    final_submission: bool = True


class DetectRequest(BaseModel):
    pickup: AddressData
    delivery: AddressData
    volume: Optional[Decimal] = None


def _require_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise HTTPException(status_code=500, detail=f"Missing required environment variable: {name}")
    return value


def get_rules_path() -> Path:
    path = Path(_require_env("PRICING_RULES_FILE"))
    if not path.exists():
        raise HTTPException(status_code=500, detail=f"Rule file not found: {path}")
    return path


@router.post("/quote")
def price_quote(payload: PriceQuoteRequest, rules_path: Path = Depends(get_rules_path)) -> dict[str, Any]:
    try:
        rules = load_rule_file(rules_path)
    except PricingInputError as exc:
        raise HTTPException(status_code=500, detail=f"Invalid rule file: {exc}") from exc

    runner = PricingRunner(rules, load_engine_config(), final_submission=payload.final_submission)
    try:
        result = runner.run(payload.quote, payload.base_price)
    except PricingInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return result.model_dump(mode="json")


@router.post("/detect")
def detect_requirements(payload: DetectRequest) -> dict[str, Any]:
    detector = AddressRequirementDetector(load_engine_config())
    try:
        report = detector.detect_automatic_constraints(payload.pickup, payload.delivery, payload.volume)
    except PricingInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return {
        "pickup": report.pickup.model_dump(mode="json", exclude={"inference_note"}),
        "delivery": report.delivery.model_dump(mode="json", exclude={"inference_note"}),
        "automatic_constraints": automatic_constraint_ids(report),
        "summary": summary(report),
        "warnings": {
            "pickup": detector.should_warn_user(payload.pickup),
            "delivery": detector.should_warn_user(payload.delivery),
        },
    }
