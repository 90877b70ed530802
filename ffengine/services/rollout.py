from typing import Callable, Optional

from ffengine.models import CompiledFlag, Decision, EvalContext, FlagValue, Reason, VariantTable
from ffengine.services.bucket import bucket
from ffengine.services.rules import rule_matches


def _as_bool(variant: str) -> bool:
    return variant == "true"


def _as_str(variant: str) -> str:
    return variant


def select_variant(variants: VariantTable, flag_key: str, subject_key: str) -> Optional[str]:
    """Weighted pick over a sorted variant table; None if the weights never cover the bucket."""
    if not variants:
        return None
    b = bucket(flag_key, subject_key, 0)
    cumulative = 0
    for name, weight in variants:
        cumulative += weight
        if b < cumulative:
            return name
    return None


def evaluate_flag(
    flag: Optional[CompiledFlag],
    flag_key: str,
    ctx: EvalContext,
    default: FlagValue,
    convert: Callable[[str], FlagValue],
    value_type: type,
) -> Decision:
    if flag is None:
        return Decision(default, Reason.MISSING)

    own_default = flag.default if isinstance(flag.default, value_type) else default

    if not flag.enabled:
        return Decision(own_default, Reason.DISABLED)

    # first matching rule wins
    for rule in flag.rules:
        if rule_matches(rule, ctx):
            variant = select_variant(rule.variants, flag_key, ctx.key)
            if variant is None:
                # weights short of 100; unreachable for validated tables
                return Decision(default, Reason.PERCENT)
            return Decision(convert(variant), Reason.MATCH)

    if flag.variants:
        variant = select_variant(flag.variants, flag_key, ctx.key)
        if variant is None:
            return Decision(default, Reason.PERCENT)
        return Decision(convert(variant), Reason.PERCENT)

    return Decision(own_default, Reason.DEFAULT)


def evaluate_bool(flag: Optional[CompiledFlag], flag_key: str, ctx: EvalContext, default: bool) -> Decision:
    return evaluate_flag(flag, flag_key, ctx, default, _as_bool, bool)


def evaluate_string(flag: Optional[CompiledFlag], flag_key: str, ctx: EvalContext, default: str) -> Decision:
    return evaluate_flag(flag, flag_key, ctx, default, _as_str, str)


def variant_text(value: FlagValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value
