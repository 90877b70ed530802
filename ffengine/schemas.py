import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr, field_validator

from ffengine.errors import ValidationError
from ffengine.models import BOOL, FLAG_TYPES

SUPPORTED_VERSION = 1
OPERATORS = frozenset(["eq", "neq", "gt", "gte", "lt", "lte", "in", "contains", "matches"])


def _variant_keys(value: Any) -> Any:
    # bare true/false keys load as booleans; other YAML booleans stay strings
    # (see loader.FlagsLoader), so this only restores the two bool variant names
    if not isinstance(value, dict):
        return value
    out = {}
    for k, v in value.items():
        if isinstance(k, bool):
            k = "true" if k else "false"
        elif not isinstance(k, str):
            k = str(k)
        out[k] = v
    return out


class AttributeCondition(BaseModel):
    attr: str = Field("", description="attribute name, e.g., plan, country")
    op: str = Field("", description="eq, neq, gt, gte, lt, lte, in, contains, matches")
    value: Any = None


class WhenCondition(BaseModel):
    all: List[AttributeCondition] = []
    any: List[AttributeCondition] = []


class ThenAction(BaseModel):
    variants: Dict[str, StrictInt] = {}

    @field_validator("variants", mode="before")
    @classmethod
    def normalize_variant_keys(cls, value):
        return _variant_keys(value)


class Rule(BaseModel):
    when: WhenCondition = Field(default_factory=WhenCondition)
    then: ThenAction = Field(default_factory=ThenAction)


class Flag(BaseModel):
    enabled: bool = False
    type: str = ""
    variants: Dict[str, StrictInt] = {}
    rules: List[Rule] = []
    default: Optional[Union[StrictBool, StrictStr]] = None

    @field_validator("variants", mode="before")
    @classmethod
    def normalize_variant_keys(cls, value):
        return _variant_keys(value)


class Configuration(BaseModel):
    version: StrictInt = 0
    flags: Dict[str, Flag] = {}


def validate_config(config: Configuration) -> None:
    """Check every semantic invariant of a parsed configuration.

    Raises ``ValidationError`` naming the offending flag, rule and condition.
    Flags with no rules and no variants are accepted and evaluate to their
    default.
    """
    if config.version != SUPPORTED_VERSION:
        raise ValidationError(
            f"unsupported config version: {config.version} (expected {SUPPORTED_VERSION})"
        )
    if not config.flags:
        raise ValidationError("no flags defined")
    for key, flag in config.flags.items():
        validate_flag(key, flag)


def validate_flag(key: str, flag: Flag) -> None:
    if flag.type not in FLAG_TYPES:
        raise ValidationError(f"invalid type {flag.type!r} (must be 'bool' or 'string')", flag_key=key)

    if flag.default is not None:
        expected = bool if flag.type == BOOL else str
        if not isinstance(flag.default, expected):
            raise ValidationError(
                f"default must be {flag.type} for {flag.type} flags, got {type(flag.default).__name__}",
                flag_key=key,
            )

    if flag.variants:
        problem = _check_variants(flag.type, flag.variants, require_both=True)
        if problem:
            raise ValidationError(problem, flag_key=key)

    for i, rule in enumerate(flag.rules):
        _validate_rule(key, i, flag.type, rule)


def _validate_rule(key: str, index: int, flag_type: str, rule: Rule) -> None:
    has_all = bool(rule.when.all)
    has_any = bool(rule.when.any)
    if not has_all and not has_any:
        raise ValidationError("rule must have 'all' or 'any' condition", flag_key=key, rule_index=index)
    if has_all and has_any:
        raise ValidationError(
            "rule cannot have both 'all' and 'any' conditions", flag_key=key, rule_index=index
        )

    conditions = rule.when.all if has_all else rule.when.any
    for j, cond in enumerate(conditions):
        problem = _check_condition(cond)
        if problem:
            raise ValidationError(problem, flag_key=key, rule_index=index, condition_index=j)

    if not rule.then.variants:
        raise ValidationError("rule must have 'then.variants'", flag_key=key, rule_index=index)
    problem = _check_variants(flag_type, rule.then.variants, require_both=False)
    if problem:
        raise ValidationError(problem, flag_key=key, rule_index=index)


def _check_condition(cond: AttributeCondition) -> Optional[str]:
    if not cond.attr:
        return "attr is required"
    if cond.op not in OPERATORS:
        return f"invalid operator {cond.op!r}"
    if cond.op == "matches":
        if not isinstance(cond.value, str):
            return "'matches' operator requires string value"
        try:
            re.compile(cond.value)
        except re.error as exc:
            return f"invalid regex pattern {cond.value!r}: {exc}"
    return None


def _check_variants(flag_type: str, variants: Dict[str, int], require_both: bool) -> Optional[str]:
    total = 0
    for name, weight in variants.items():
        if flag_type == BOOL and name not in ("true", "false"):
            return f"bool flag variants must be 'true' or 'false', got {name!r}"
        if weight < 0 or weight > 100:
            return f"variant {name!r} percentage must be 0-100, got {weight}"
        total += weight
    if flag_type == BOOL and require_both and set(variants) != {"true", "false"}:
        return "bool flag must have both 'true' and 'false' variants"
    if total != 100:
        return f"{flag_type} flag variant percentages must sum to 100, got {total}"
    return None
