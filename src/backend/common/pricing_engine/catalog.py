from __future__ import annotations

import argparse
import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .conditions import parse_condition
from .errors import InvalidRuleDefinition
from .models import RuleCategory, RuleScope
from .registry import RuleSet
from .rule import Rule


class RuleRecord(BaseModel):
    """One rule as supplied by the rule source (data store, file)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    value: Decimal
    is_percentage: bool = Field(default=False, validation_alias=AliasChoices("is_percentage", "isPercentage"))
    category: Optional[RuleCategory] = None
    priority: int = 100
    scope: Optional[RuleScope] = RuleScope.NONE
    condition: Optional[Union[str, Dict[str, Any]]] = None
    enabled: bool = Field(default=True, validation_alias=AliasChoices("enabled", "isActive"))

    @field_validator("category", "scope", mode="before")
    @classmethod
    def _lowercase(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator("scope", mode="after")
    @classmethod
    def _default_scope(cls, value):
        return value or RuleScope.NONE

    def to_rule(self) -> Rule:
        return Rule(
            id=self.id,
            name=self.name,
            value=self.value,
            is_percentage=self.is_percentage,
            category=self.category,
            priority=self.priority,
            scope=self.scope,
            condition=parse_condition(self.condition),
        )


def build_rule_set(records: Iterable[Union[Mapping[str, Any], RuleRecord]]) -> RuleSet:
    rules: List[Rule] = []
    for raw in records:
        if isinstance(raw, RuleRecord):
            record = raw
        else:
            try:
                record = RuleRecord.model_validate(raw)
            except ValidationError as exc:
                rule_id = raw.get("id", "?") if isinstance(raw, Mapping) else "?"
                raise InvalidRuleDefinition(f"Invalid rule record {rule_id}: {exc}") from exc
        if not record.enabled:
            continue
        rules.append(record.to_rule())
    return RuleSet(rules)


def _yaml():
    try:
        import yaml  # type: ignore
    except ModuleNotFoundError as exc:
        raise SystemExit(
            "PyYAML is required for YAML rule files. Install the `yaml` extra (e.g., `pip install .[yaml]`)."
        ) from exc
    return yaml


def load_rule_records(path: Path) -> List[Dict[str, Any]]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = _yaml().safe_load(text)
    else:
        data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise InvalidRuleDefinition(f"Rule file {path} must contain a list of rules")
    return data


def load_rule_file(path: Union[str, Path]) -> RuleSet:
    return build_rule_set(load_rule_records(Path(path)))


def build_catalog(rules: RuleSet) -> List[Dict[str, Any]]:
    entries = []
    for rule in rules:
        entry = rule.to_record()
        entry["constraint_name"] = rule.constraint_name
        entries.append(entry)
    return entries


def _dump_json(catalog: list[dict[str, Any]]) -> str:
    return json.dumps(catalog, indent=2, sort_keys=True)


def _dump_yaml(catalog: list[dict[str, Any]]) -> str:
    return _yaml().safe_dump(catalog, sort_keys=True, allow_unicode=True)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Validate a rule file and print its normalized catalog.")
    parser.add_argument("rules", help="Path to a JSON or YAML rule file.")
    parser.add_argument(
        "--format",
        choices=("yaml", "json"),
        default="json",
        help="Output format (default: json).",
    )
    args = parser.parse_args(argv)

    catalog = build_catalog(load_rule_file(args.rules))
    if args.format == "json":
        print(_dump_json(catalog))
    else:
        print(_dump_yaml(catalog))


if __name__ == "__main__":
    main()
