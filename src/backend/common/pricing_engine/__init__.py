"""Quote pricing engine.

Callers hand in a rule set and a quote context and get back an immutable ExecutionResult. The
engine itself does no I/O: `catalog` turns rule files into a RuleSet, and HTTP serving lives in
`api.pricing`.
"""

from .aggregator import PriceAggregator, classify_outcome
from .applier import AppliedRuleOutcome, RuleApplier, ScopeResolution, resolve_address_scope
from .catalog import RuleRecord, build_rule_set, load_rule_file
from .config import EngineConfig, load_engine_config
from .context import ContextEnricher, EnrichedContext
from .detection import AddressRequirementDetector, validate_address_data
from .errors import (
    CurrencyMismatchError,
    InvalidAddressData,
    InvalidQuoteContext,
    InvalidRuleDefinition,
    PricingInputError,
)
from .models import (
    AddressCosts,
    AddressData,
    AppliedRuleDetail,
    AppliedRuleType,
    CarryDistanceBand,
    ElevatorClass,
    ExecutionResult,
    QuoteContext,
    RequirementDetectionResult,
    RuleCategory,
    RuleScope,
)
from .money import Money
from .registry import RuleSet
from .rule import Rule
from .runner import PricingRunner, price_quote

__all__ = [
    "AddressCosts",
    "AddressData",
    "AddressRequirementDetector",
    "AppliedRuleDetail",
    "AppliedRuleOutcome",
    "AppliedRuleType",
    "CarryDistanceBand",
    "ContextEnricher",
    "CurrencyMismatchError",
    "ElevatorClass",
    "EngineConfig",
    "EnrichedContext",
    "ExecutionResult",
    "InvalidAddressData",
    "InvalidQuoteContext",
    "InvalidRuleDefinition",
    "Money",
    "PriceAggregator",
    "PricingInputError",
    "PricingRunner",
    "QuoteContext",
    "RequirementDetectionResult",
    "Rule",
    "RuleApplier",
    "RuleCategory",
    "RuleRecord",
    "RuleScope",
    "RuleSet",
    "ScopeResolution",
    "build_rule_set",
    "classify_outcome",
    "load_engine_config",
    "load_rule_file",
    "price_quote",
    "resolve_address_scope",
    "validate_address_data",
]
